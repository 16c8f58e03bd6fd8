"""
Client configuration.

The node address and chain identifier are handed to ``Transport`` as an
explicit ``TransportConfig`` value.  ``from_env`` reads them from the process
environment, after loading ``~/.linoclient/.env`` when present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Default config directory
LINO_DIR = Path.home() / ".linoclient"
LINO_ENV = LINO_DIR / ".env"

DEFAULT_NODE_URL = "http://localhost:46657"
DEFAULT_CHAIN_ID = "test-chain-NVQwvW"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class TransportConfig:
    node_url: str = DEFAULT_NODE_URL
    chain_id: str = DEFAULT_CHAIN_ID
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "TransportConfig":
        """
        Build a config from ``LINO_NODE_URL``, ``LINO_CHAIN_ID`` and ``LINO_RPC_TIMEOUT``.

        Args:
            env_path: Path to .env file (default: ~/.linoclient/.env)

        Returns:
            TransportConfig with defaults for anything unset
        """
        env_path = env_path or LINO_ENV
        if env_path.exists():
            load_dotenv(env_path, override=False)

        timeout = os.environ.get("LINO_RPC_TIMEOUT")
        return cls(
            node_url=os.environ.get("LINO_NODE_URL", DEFAULT_NODE_URL),
            chain_id=os.environ.get("LINO_CHAIN_ID", DEFAULT_CHAIN_ID),
            timeout=float(timeout) if timeout else DEFAULT_TIMEOUT,
        )

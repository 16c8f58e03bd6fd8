"""
Pneuma - On-chain interaction layer for the Lino client.

Provides the Tendermint JSON-RPC transport, the store key layout, the
record query/decode layer and the transaction broadcast pipeline.

Uses httpx for HTTP, cryptography for signatures and rfc8785 for canonical
encoding.
"""

from __future__ import annotations

import functools
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema

RECORDS_SCHEMA = "records.schema.json"


class SchemaValidationError(ValueError):
    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


@dataclass(frozen=True)
class SchemaRegistry:
    schema_root: Path
    _validators: dict[str, jsonschema.Validator] = field(
        default_factory=dict, compare=False, repr=False
    )

    @classmethod
    def default(cls) -> "SchemaRegistry":
        return _default_registry()

    def schema_path(self, schema_filename: str) -> Path:
        return self.schema_root / schema_filename

    def load_schema(self, schema_filename: str = RECORDS_SCHEMA) -> dict[str, Any]:
        path = self.schema_path(schema_filename)
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def record_names(self) -> list[str]:
        return sorted(self.load_schema()["$defs"])

    def validator_for(self, record_name: str) -> jsonschema.Validator:
        cached = self._validators.get(record_name)
        if cached is not None:
            return cached

        schema = self.load_schema()
        defs = schema["$defs"]
        if record_name not in defs:
            raise KeyError(f"Unknown record schema: {record_name}")
        ref_schema = {
            "$schema": schema["$schema"],
            "$defs": defs,
            "$ref": f"#/$defs/{record_name}",
        }
        validator_cls = jsonschema.validators.validator_for(ref_schema)
        validator_cls.check_schema(ref_schema)
        validator = validator_cls(ref_schema)
        self._validators[record_name] = validator
        return validator

    def validate_instance(self, instance: Any, record_name: str) -> None:
        validator = self.validator_for(record_name)
        errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
        if errors:
            formatted = [self._format_error(err) for err in errors]
            raise SchemaValidationError(
                f"Schema validation failed for {record_name}.",
                errors=formatted,
            )

    @staticmethod
    def _format_error(error: jsonschema.ValidationError) -> str:
        location = "/".join(str(part) for part in error.path) or "<root>"
        return f"{location}: {error.message}"


@functools.lru_cache(maxsize=None)
def _default_registry() -> SchemaRegistry:
    return SchemaRegistry(schema_root=Path(__file__).resolve().parent)

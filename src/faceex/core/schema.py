"""Declarative document validation backed by JSON Schema (Draft 7).

The validator is generic over the schema it is given; the configuration and
keyframe formats are plain JSON files under ``assets/schemas``. Validation
never raises: ``validate()`` answers yes/no and ``errors()`` lists what went
wrong on the most recent call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from jsonschema import Draft7Validator

from faceex.constants import CONFIG_SCHEMA_NAME, KEYFRAME_SCHEMA_NAME
from faceex.core.config_loader import load_schema


@dataclass(frozen=True)
class ValidationMessage:
    """A single field-level problem."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


def format_path(parts) -> str:
    return ".".join(str(p) for p in parts) or "<root>"


class SchemaValidator:
    """Validate JSON-like documents against one schema."""

    def __init__(self, schema: dict):
        Draft7Validator.check_schema(schema)
        self.schema = schema
        self._validator = Draft7Validator(schema)
        self._errors: list[ValidationMessage] = []

    def validate(self, document: Any) -> bool:
        """Return True when ``document`` conforms; keeps the failures otherwise."""
        found = sorted(
            self._validator.iter_errors(document),
            key=lambda e: [str(p) for p in e.absolute_path],
        )
        self._errors = [
            ValidationMessage(format_path(e.absolute_path), e.message) for e in found
        ]
        return not self._errors

    def errors(self, document: Any = None) -> list[ValidationMessage]:
        """Failures of the last validation, or of ``document`` when given."""
        if document is not None:
            self.validate(document)
        return list(self._errors)

    def subschema(self, *path: str) -> "SchemaValidator":
        """Validator for a nested part of this schema, e.g. ``("properties", "actionUnits", "items")``."""
        node = self.schema
        for key in path:
            node = node[key]
        return SchemaValidator(node)


def config_validator() -> SchemaValidator:
    return SchemaValidator(load_schema(CONFIG_SCHEMA_NAME))


def keyframe_validator() -> SchemaValidator:
    return SchemaValidator(load_schema(KEYFRAME_SCHEMA_NAME))

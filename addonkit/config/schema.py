"""
Addon Configuration Schema.

This module turns the `config` table of an addon manifest into typed field
definitions and validates values against them.

A manifest declares fields like:

    "config": {
        "threshold": {"type": "float", "default": 0.5, "min": 0, "max": 1},
        "mode": {"type": "str", "default": "fast", "choices": ["fast", "safe"]}
    }
"""

from dataclasses import dataclass
from typing import Any


class SchemaError(Exception):
    """Raised when a schema definition is invalid."""

    pass


class ValidationError(SchemaError):
    """Raised when a value does not satisfy its field."""

    pass


TYPE_NAMES: dict[str, type] = {
    "int": int,
    "float": float,
    "str": str,
    "bool": bool,
    "list": list,
    "dict": dict,
}

_SIZED_TYPES = (str, list)
_NUMERIC_TYPES = (int, float)


def _is_instance(value: Any, type_: type) -> bool:
    # bool is an int subclass; keep the two apart
    if type_ in _NUMERIC_TYPES and isinstance(value, bool):
        return False
    if type_ is float and isinstance(value, int):
        return True
    return isinstance(value, type_)


@dataclass(frozen=True)
class ConfigField:
    """
    One configuration field.

    Attributes:
        type_: Expected Python type
        default: Default value
        description: Human-readable description
        min: Minimum value, or minimum length for str/list
        max: Maximum value, or maximum length for str/list
        choices: Allowed values
    """

    type_: type
    default: Any
    description: str = ""
    min: Any = None
    max: Any = None
    choices: tuple[Any, ...] | None = None

    def __post_init__(self):
        if not _is_instance(self.default, self.type_):
            raise SchemaError(
                f"Default value {self.default!r} does not match type {self.type_.__name__}"
            )
        if (self.min is not None or self.max is not None) and self.type_ not in (
            *_NUMERIC_TYPES,
            *_SIZED_TYPES,
        ):
            raise SchemaError(
                f"min/max only apply to int, float, str and list, not {self.type_.__name__}"
            )
        if self.choices is not None and self.default not in self.choices:
            raise SchemaError(
                f"Default value {self.default!r} not in choices {list(self.choices)}"
            )

    def validate(self, value: Any) -> None:
        """
        Validate a value against this field.

        Raises:
            ValidationError: If the value is rejected
        """
        if not _is_instance(value, self.type_):
            raise ValidationError(
                f"Expected type {self.type_.__name__}, got {type(value).__name__}"
            )

        if self.choices is not None and value not in self.choices:
            raise ValidationError(
                f"Value {value!r} not in allowed choices {list(self.choices)}"
            )

        measured = len(value) if self.type_ in _SIZED_TYPES else value
        label = "Length" if self.type_ in _SIZED_TYPES else "Value"
        if self.min is not None and measured < self.min:
            raise ValidationError(f"{label} {measured} is less than minimum {self.min}")
        if self.max is not None and measured > self.max:
            raise ValidationError(f"{label} {measured} is greater than maximum {self.max}")


def field_from_manifest(name: str, spec: Any) -> ConfigField:
    """
    Build a ConfigField from its manifest declaration.

    Args:
        name: Field name (used in error messages)
        spec: Mapping with "type", "default" and optional constraint keys

    Raises:
        SchemaError: If the declaration is malformed
    """
    if not isinstance(spec, dict):
        raise SchemaError(f"Config field '{name}' must be a table")

    type_name = spec.get("type")
    if type_name not in TYPE_NAMES:
        raise SchemaError(
            f"Config field '{name}' has unknown type {type_name!r}. "
            f"Expected one of: {', '.join(TYPE_NAMES)}"
        )
    if "default" not in spec:
        raise SchemaError(f"Config field '{name}' is missing a default")

    unknown = set(spec) - {"type", "default", "description", "min", "max", "choices"}
    if unknown:
        raise SchemaError(f"Config field '{name}' has unknown keys: {sorted(unknown)}")

    choices = spec.get("choices")
    if choices is not None and not isinstance(choices, list):
        raise SchemaError(f"Config field '{name}': choices must be a list")

    try:
        return ConfigField(
            type_=TYPE_NAMES[type_name],
            default=spec["default"],
            description=str(spec.get("description", "")),
            min=spec.get("min"),
            max=spec.get("max"),
            choices=tuple(choices) if choices is not None else None,
        )
    except SchemaError as e:
        raise SchemaError(f"Config field '{name}': {e}") from e


def parse_schema(data: Any) -> dict[str, ConfigField]:
    """Parse a whole manifest `config` table."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SchemaError("'config' must be a table of field declarations")
    return {name: field_from_manifest(name, spec) for name, spec in data.items()}


def validate_config(config: dict[str, Any], schema: dict[str, ConfigField]) -> None:
    """
    Validate stored values against a schema.

    Keys absent from `config` fall back to defaults and are not an error.

    Raises:
        ValidationError: On unknown keys or invalid values
    """
    for key in config:
        if key not in schema:
            raise ValidationError(f"Unknown configuration field: {key}")

    for name, value in config.items():
        try:
            schema[name].validate(value)
        except ValidationError as e:
            raise ValidationError(f"Field '{name}': {e}") from e


def default_config(schema: dict[str, ConfigField]) -> dict[str, Any]:
    """Default value for every field."""
    return {name: field.default for name, field in schema.items()}

"""Argument schemas and validation for registered tools."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

from .errors import ArgumentError

__all__ = ["ArgumentSchema", "ArgumentSpec"]

_JSON_TYPES = ("string", "integer", "number", "boolean")
_MISSING = object()


@dataclass(frozen=True, slots=True)
class ArgumentSpec:
    """Declaration of a single tool parameter."""

    type: str
    description: str = ""
    required: bool = False
    default: Any = None
    enum: tuple[Any, ...] | None = None

    def __post_init__(self) -> None:
        if self.type not in _JSON_TYPES:
            raise ValueError(f"Unsupported argument type: {self.type!r}")
        if self.required and self.default is not None:
            raise ValueError("A required argument cannot declare a default")

    def to_json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        return schema

    def coerce(self, name: str, value: Any) -> Any:
        if self.type == "string":
            if isinstance(value, str):
                return value
            raise ArgumentError(name, f"expected string, got {type(value).__name__}")
        if self.type == "boolean":
            if isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
                return value.strip().lower() == "true"
            raise ArgumentError(name, f"expected boolean, got {value!r}")
        if isinstance(value, bool):
            raise ArgumentError(name, f"expected {self.type}, got boolean")
        if isinstance(value, str):
            try:
                value = float(value) if self.type == "number" else int(value)
            except ValueError:
                raise ArgumentError(name, f"expected {self.type}, got {value!r}") from None
        if self.type == "integer" and isinstance(value, float) and value.is_integer():
            return int(value)
        return value


class ArgumentSchema(Mapping[str, ArgumentSpec]):
    """Ordered, read-only mapping of parameter name to :class:`ArgumentSpec`."""

    def __init__(self, specs: Mapping[str, ArgumentSpec] | None = None) -> None:
        self._specs: dict[str, ArgumentSpec] = dict(specs or {})
        schema = self.to_json_schema()
        Draft202012Validator.check_schema(schema)
        self._validator = Draft202012Validator(schema)

    def __getitem__(self, name: str) -> ArgumentSpec:
        return self._specs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        return f"ArgumentSchema({self._specs!r})"

    def to_json_schema(self) -> dict[str, Any]:
        """Render the declaration as the ``inputSchema`` advertised by ``tools/list``."""

        return {
            "type": "object",
            "properties": {name: spec.to_json_schema() for name, spec in self._specs.items()},
            "required": [name for name, spec in self._specs.items() if spec.required],
        }

    def validate(self, arguments: Mapping[str, Any] | None) -> dict[str, Any]:
        """Return coerced arguments with defaults applied.

        Undeclared keys are dropped. Absent optional parameters without a
        default are left out entirely so callers never forward ``None``.
        """

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            raise ArgumentError(None, "arguments must be a JSON object")

        validated: dict[str, Any] = {}
        for name, spec in self._specs.items():
            raw = arguments.get(name, _MISSING)
            if raw is _MISSING or raw is None:
                if spec.required:
                    raise ArgumentError(name, "is required")
                if spec.default is not None:
                    validated[name] = spec.default
                continue
            validated[name] = spec.coerce(name, raw)

        error = best_match(self._validator.iter_errors(validated))
        if error is not None:
            parameter = str(error.path[0]) if error.path else None
            raise ArgumentError(parameter, error.message)
        return validated

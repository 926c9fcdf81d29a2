from __future__ import annotations

import json
import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from jsonschema import Draft202012Validator, exceptions as js_exceptions, validators


logger = logging.getLogger(__name__)


# ---------------------------
# Exceptions
# ---------------------------

class JsonLoaderError(Exception):
    """Base error for JSON loader issues."""


class JsonFileNotFoundError(JsonLoaderError):
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"JSON file not found: {self.path}")


class JsonParseError(JsonLoaderError):
    def __init__(self, source: str, message: str, lineno: Optional[int] = None, colno: Optional[int] = None):
        self.source = source
        self.message = message
        self.lineno = lineno
        self.colno = colno
        location = f" (line {lineno}, column {colno})" if lineno is not None and colno is not None else ""
        super().__init__(f"Failed to parse JSON at {source}{location}: {message}")


class JsonSchemaError(JsonLoaderError):
    def __init__(self, source: str, errors: Sequence[js_exceptions.ValidationError]):
        self.source = source
        self.errors = list(errors)
        super().__init__(_format_schema_errors(source, self.errors))


# ---------------------------
# Utilities
# ---------------------------

def _extend_with_default(validator_class):
    """Extend a jsonschema validator to set defaults onto instances.

    When a property declares a 'default' and is missing on the instance, the
    default is injected before further validation.
    """

    validate_properties = validator_class.VALIDATORS["properties"]

    def set_defaults(validator, properties, instance, schema):
        if isinstance(instance, dict):
            for prop, subschema in properties.items():
                if "default" in subschema and prop not in instance:
                    instance[prop] = deepcopy(subschema["default"])
        for error in validate_properties(validator, properties, instance, schema):
            yield error

    return validators.extend(validator_class, {"properties": set_defaults})


DefaultingValidator = _extend_with_default(Draft202012Validator)


def _format_schema_errors(source: str, errors: Sequence[js_exceptions.ValidationError]) -> str:
    """Create a readable, multi-line error message from jsonschema errors."""
    lines = [f"Schema validation failed for {source}:"]
    missing_by_path: Dict[str, List[str]] = {}
    other_msgs: List[str] = []

    for err in errors:
        where = ".".join(str(p) for p in err.absolute_path) or "$"
        if err.validator == "required":
            # message like: "'size_x' is a required property"
            parts = err.message.split("'")
            if len(parts) >= 2:
                missing_by_path.setdefault(where, []).append(parts[1])
                continue
        other_msgs.append(f" - At {where}: {err.message}")

    for loc, props in sorted(missing_by_path.items()):
        loc_display = "root" if loc == "$" else loc
        lines.append(f" - Missing required keys at {loc_display}: {', '.join(sorted(set(props)))}")

    lines.extend(other_msgs)
    return "\n".join(lines)


# ---------------------------
# Public API
# ---------------------------

def parse_json_text(text: str, *, source: str = "<string>") -> Any:
    """Parse JSON text, raising JsonParseError with location info on failure."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise JsonParseError(source, e.msg, e.lineno, e.colno) from e


def validate_json_data(data: Any, schema: Mapping[str, Any], *, source: str = "<data>") -> List[str]:
    """Validate data in place against a JSON Schema, applying schema defaults.

    Returns the sorted list of top-level keys that were filled from defaults.
    """
    if not isinstance(data, (dict, list)):
        raise JsonSchemaError(source, [js_exceptions.ValidationError("Root must be object or array")])

    before = set(data.keys()) if isinstance(data, dict) else set()
    validator = DefaultingValidator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errors:
        raise JsonSchemaError(source, errors)
    after = set(data.keys()) if isinstance(data, dict) else set()
    applied = sorted(after - before)
    if applied:
        logger.debug("Applied default values for missing keys in %s: %s", source, ", ".join(applied))
    return applied


def load_json_file(path: Union[str, Path], *, schema: Optional[Mapping[str, Any]] = None) -> Any:
    """Load a JSON file and optionally validate it against a JSON Schema.

    Raises JsonLoaderError subclasses on failure.
    """
    p = Path(path)
    if not p.exists():
        raise JsonFileNotFoundError(p)
    text = p.read_text(encoding="utf-8")
    data = parse_json_text(text, source=str(p))
    if schema:
        validate_json_data(data, schema, source=str(p))
    return data


__all__ = [
    "parse_json_text",
    "validate_json_data",
    "load_json_file",
    "JsonLoaderError",
    "JsonFileNotFoundError",
    "JsonParseError",
    "JsonSchemaError",
]

"""
Partogram field registry - single source of truth for measurement field definitions.

This module provides:
- YAML-based configuration loading and validation
- FieldDefinition dataclass for each clinical field
- Validation of incoming measurement payloads against the definitions

YAML access is encapsulated here - no other module should read
partogram_fields.yaml directly.

Usage:
    from core.field_registry import get_field, list_fields, validate_measurement_fields

    dilation = get_field("cervical_dilation")
    clean = validate_measurement_fields({"cervical_dilation": 7, "fetal_heart_rate": 140})
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from core.exceptions import MeasurementValidationError

logger = logging.getLogger(__name__)

SUPPORTED_TYPES = ("int", "float", "str", "bool")


# =============================================================================
# FIELD DEFINITION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class FieldDefinition:
    """
    Immutable definition for one partogram field.

    Attributes:
        name: Field key in payloads and storage
        type: One of int, float, str, bool
        min_value / max_value: Numeric bounds, None if unbounded
        exclusive: Whether the bounds themselves are out of range
        options: Allowed values, empty if the field is free-form
        pattern: Regex a string value must fully match
        unit: Display unit
        group: Partogram chart section (fetal, maternal, labor, medication)
        description: Tooltip text
    """
    name: str
    type: str
    min_value: Optional[float]
    max_value: Optional[float]
    exclusive: bool
    options: Tuple[Any, ...]
    pattern: Optional[str]
    unit: str
    group: str
    description: str

    def check(self, value: Any) -> Optional[str]:
        """
        Check a single value against this definition.

        Returns:
            An error message, or None if the value is acceptable.
        """
        if not _type_matches(self.type, value):
            return f"expected {self.type}, got {type(value).__name__}"

        if self.options and value not in self.options:
            allowed = ", ".join(str(o) for o in self.options)
            return f"must be one of: {allowed}"

        if self.pattern and not re.fullmatch(self.pattern, value):
            return f"must match {self.pattern}"

        if self.type in ("int", "float"):
            if self.min_value is not None:
                too_low = value <= self.min_value if self.exclusive else value < self.min_value
                if too_low:
                    return f"must be {'greater than' if self.exclusive else 'at least'} {_fmt(self.min_value)}"
            if self.max_value is not None:
                too_high = value >= self.max_value if self.exclusive else value > self.max_value
                if too_high:
                    return f"must be {'less than' if self.exclusive else 'at most'} {_fmt(self.max_value)}"

        return None


def _type_matches(type_name: str, value: Any) -> bool:
    # bool is a subclass of int; keep them apart
    if type_name == "bool":
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if type_name == "int":
        return isinstance(value, int)
    if type_name == "float":
        return isinstance(value, (int, float))
    return isinstance(value, str)


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


# =============================================================================
# YAML CONFIGURATION LOADING & VALIDATION
# =============================================================================

def _get_config_path() -> Path:
    """Get the path to the field registry file."""
    return Path(__file__).parent / 'partogram_fields.yaml'


def _load_yaml_config() -> Dict[str, Any]:
    """
    Load and parse the YAML configuration file.

    Raises:
        FileNotFoundError: If partogram_fields.yaml is not found
        yaml.YAMLError: If YAML parsing fails
    """
    config_path = _get_config_path()
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except FileNotFoundError:
        logger.error("Field registry file not found", extra={'path': str(config_path)})
        raise
    except yaml.YAMLError as e:
        logger.error("Failed to parse field registry", extra={'path': str(config_path), 'error': str(e)})
        raise


def _validate_field_entry(raw: Dict[str, Any], index: int) -> None:
    """
    Validate a single field entry from YAML.

    Raises:
        ValueError: If required keys are missing or invalid
    """
    for key in ('name', 'type'):
        if key not in raw:
            raise ValueError(f"Field at index {index} is missing required key: '{key}'")

    if raw['type'] not in SUPPORTED_TYPES:
        raise ValueError(f"Field '{raw['name']}' has unsupported type: '{raw['type']}'")

    for bound in ('min', 'max'):
        if raw.get(bound) is not None:
            if raw['type'] not in ('int', 'float'):
                raise ValueError(f"Field '{raw['name']}' has a {bound} bound but is not numeric")
            try:
                float(raw[bound])
            except (TypeError, ValueError):
                raise ValueError(f"Field '{raw['name']}' has non-numeric {bound}")

    if raw.get('pattern') is not None:
        if raw['type'] != 'str':
            raise ValueError(f"Field '{raw['name']}' has a pattern but is not a string")
        try:
            re.compile(raw['pattern'])
        except re.error as e:
            raise ValueError(f"Field '{raw['name']}' has invalid pattern: {e}")


def _parse_field_entry(raw: Dict[str, Any]) -> FieldDefinition:
    """Parse a single YAML entry into a FieldDefinition."""
    return FieldDefinition(
        name=raw['name'],
        type=raw['type'],
        min_value=float(raw['min']) if raw.get('min') is not None else None,
        max_value=float(raw['max']) if raw.get('max') is not None else None,
        exclusive=bool(raw.get('exclusive', False)),
        options=tuple(raw.get('options') or ()),
        pattern=raw.get('pattern'),
        unit=raw.get('unit', ''),
        group=raw.get('group', 'other'),
        description=raw.get('description', ''),
    )


@lru_cache(maxsize=1)
def _load_registry() -> Dict[str, FieldDefinition]:
    """
    Load and cache the field registry from YAML, in file order.

    Raises:
        ValueError: On invalid or duplicate entries
    """
    config = _load_yaml_config() or {}
    registry: Dict[str, FieldDefinition] = {}

    for i, raw in enumerate(config.get('fields', [])):
        _validate_field_entry(raw, i)
        definition = _parse_field_entry(raw)
        if definition.name in registry:
            raise ValueError(f"Duplicate field definition: '{definition.name}'")
        registry[definition.name] = definition

    logger.info("Partogram field registry loaded", extra={'field_count': len(registry)})
    return registry


# =============================================================================
# PUBLIC API
# =============================================================================

def get_field(name: str) -> Optional[FieldDefinition]:
    """Get a field definition by name, or None if unknown."""
    return _load_registry().get(name)


def list_fields() -> List[FieldDefinition]:
    """All field definitions in registry order."""
    return list(_load_registry().values())


def validate_measurement_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a measurement payload against the registry.

    None values are treated as "not measured" and dropped. Integers given
    for float fields are converted to float.

    Args:
        fields: Mapping of field name to value.

    Returns:
        The cleaned payload.

    Raises:
        MeasurementValidationError: With a per-field error map in its context.
    """
    registry = _load_registry()
    errors: Dict[str, str] = {}
    clean: Dict[str, Any] = {}

    for name, value in fields.items():
        if value is None:
            continue
        definition = registry.get(name)
        if definition is None:
            errors[name] = "unknown field"
            continue
        problem = definition.check(value)
        if problem:
            errors[name] = problem
            continue
        clean[name] = float(value) if definition.type == "float" else value

    if errors:
        summary = "; ".join(f"{name}: {msg}" for name, msg in sorted(errors.items()))
        raise MeasurementValidationError(
            detail=f"Invalid measurement data - {summary}",
            errors=errors,
        )

    return clean

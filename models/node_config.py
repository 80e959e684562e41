"""
Per-kind node configuration records.

Each node kind carries its own typed config dataclass. Cross-node
features (property bindings, serialization, the side panel) reach the
fields through the generic string-keyed accessors on NodeConfig, which
coerce incoming values to the field's declared type.
"""

from dataclasses import dataclass, fields, asdict
from typing import Union


# A config value as stored on a node
Value = Union[bool, float, int, str]

_TRUE_STRINGS = ("true", "1", "on", "yes")
_FALSE_STRINGS = ("false", "0", "off", "no", "")


def coerce_value(value: Value, target_type: type, key: str = "") -> Value:
    """
    Convert a value to the given field type.

    Raises:
        ValueError: if the value cannot represent the target type
    """
    if target_type is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
    elif target_type is float:
        if isinstance(value, (bool, int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                pass
    elif target_type is str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
    raise ValueError(f"Cannot assign {value!r} to property '{key}' of type {target_type.__name__}")


@dataclass
class NodeConfig:
    """Base class for the per-kind config records."""

    # Keys whose values are expressed as 0-100 percentages
    PERCENT_KEYS = ()

    def keys(self) -> list[str]:
        return [f.name for f in fields(self)]

    def has_property(self, key: str) -> bool:
        return any(f.name == key for f in fields(self))

    def field_type(self, key: str) -> type:
        for f in fields(self):
            if f.name == key:
                return f.type
        raise KeyError(f"Unknown property '{key}' on {type(self).__name__}")

    def get_property(self, key: str) -> Value:
        if not self.has_property(key):
            raise KeyError(f"Unknown property '{key}' on {type(self).__name__}")
        return getattr(self, key)

    def coerce(self, key: str, value: Value) -> Value:
        """Return value converted to the declared type of key."""
        return coerce_value(value, self.field_type(key), key)

    def set_property(self, key: str, value: Value) -> Value:
        """Assign a value by key and return the stored (coerced) value."""
        coerced = self.coerce(key, value)
        setattr(self, key, coerced)
        return coerced

    def is_percentage(self, key: str) -> bool:
        """Check if a bound value for key should be read as a percentage."""
        return key in self.PERCENT_KEYS

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "NodeConfig":
        """Build a record from plain data, ignoring unknown keys."""
        config = cls()
        for key, value in data.items():
            if config.has_property(key):
                config.set_property(key, value)
        return config


@dataclass
class PickerConfig(NodeConfig):
    """Asset picker: the root producer of a chain."""
    src: str = ""


@dataclass
class OscillatorConfig(NodeConfig):
    """Low frequency oscillator settings."""
    frequency: float = 1.0
    amplitude: float = 1.0
    enabled: bool = True


@dataclass
class TransformConfig(NodeConfig):
    """Modifier applied to upstream values."""
    scale: float = 100.0     # percent
    rotation: float = 0.0    # degrees
    enabled: bool = True

    PERCENT_KEYS = ("scale",)


@dataclass
class LogicConfig(NodeConfig):
    value: bool = False
    enabled: bool = True


@dataclass
class OutputConfig(NodeConfig):
    value: float = 0.0
    enabled: bool = True


@dataclass
class SliderConfig(NodeConfig):
    """Ranged scalar control."""
    min: float = 0.0
    max: float = 100.0
    step: float = 1.0
    value: float = 50.0

    def is_percentage(self, key: str) -> bool:
        # A 0-100 slider reads every bound input as a percentage
        return self.max == 100


@dataclass
class NumberConfig(NodeConfig):
    value: float = 50.0


@dataclass
class BooleanConfig(NodeConfig):
    value: bool = True


@dataclass
class CloneConfig(NodeConfig):
    """Instance of another node."""
    source_id: str = ""

"""Addon configuration schemas and validation results."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any

from croniter import croniter
from pydantic import AfterValidator, BaseModel, ConfigDict, ValidationError
from pytimeparse import parse as parse_duration

from convoy.cluster.config import format_validation_errors


def is_duration(value: Any) -> bool:
    """True if ``value`` parses as a duration string such as ``"1h30m"``."""
    if not isinstance(value, str):
        return False
    return parse_duration(value) is not None


def is_cron(value: Any) -> bool:
    """True if ``value`` is a crontab expression whose seconds field is exactly ``0``.

    Five-field expressions have an implicit zero seconds field. Six-field expressions
    carry the seconds first and must set it to ``0``.
    """
    if not isinstance(value, str):
        return False

    fields = value.split()
    if len(fields) == 6:
        if fields[0] != "0":
            return False
        fields = fields[1:]

    if not fields:
        return False
    return croniter.is_valid(" ".join(fields))


def _check_duration(value: str) -> str:
    if not is_duration(value):
        raise ValueError("is not valid duration")
    return value


def _check_cron(value: str) -> str:
    if not is_cron(value):
        raise ValueError("is not a valid crontab")
    return value


Duration = Annotated[str, AfterValidator(_check_duration)]
Cron = Annotated[str, AfterValidator(_check_cron)]


class AddonSchema(BaseModel):
    """Base schema every addon config is validated against.

    Subclass it to declare addon-specific fields; use :data:`Duration` and
    :data:`Cron` for schedule-like values.
    """

    model_config = ConfigDict(extra="allow")

    enabled: bool


@dataclass
class ValidationResult:
    """Outcome of validating an addon config.

    Attributes:
        output: Validated (coerced) values, or None on failure
        errors: Dotted field path to list of messages; empty on success
    """

    output: dict[str, Any] | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors

    def messages(self) -> list[str]:
        return [f"{path} {msg}" for path, msgs in self.errors.items() for msg in msgs]


def validate_config(schema: type[BaseModel], config: Any) -> ValidationResult:
    """Validate ``config`` against ``schema`` without raising on ordinary failures."""
    try:
        model = schema.model_validate(config if config is not None else {})
    except ValidationError as e:
        return ValidationResult(errors=format_validation_errors(e))

    return ValidationResult(output=model.model_dump())


class OpenConfig(Mapping):
    """Read-only config for addons without a typed config class.

    Keys are reachable as attributes; nested mappings are wrapped recursively.
    Accessing a key that is not present raises ``AttributeError`` (attribute access)
    or ``KeyError`` (item access) instead of returning None.
    """

    def __init__(self, data: Mapping[str, Any] | None = None):
        self._data = dict(data or {})

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"config has no key '{name}'") from None

    def __getitem__(self, key: str) -> Any:
        return _wrap(self._data[key])

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"OpenConfig({self._data!r})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)


def _wrap(value: Any) -> Any:
    if isinstance(value, Mapping):
        return OpenConfig(value)
    if isinstance(value, list):
        return [_wrap(item) for item in value]
    return value

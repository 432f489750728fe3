"""Typed command line arguments."""

from __future__ import annotations

import re
from collections.abc import Collection, Iterable
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Generic, TypeVar

from .argument_errors import ArgumentProblem

T = TypeVar("T")
E = TypeVar("E", bound=Enum)

_TRUE_LITERALS = frozenset({"true", "on", "1"})
_FALSE_LITERALS = frozenset({"false", "off", "0"})
_TIMESPAN_PATTERN = re.compile(r"^(?:(?P<days>\d+)\.)?(?P<hours>\d+):(?P<minutes>\d{1,2}):(?P<seconds>\d{1,2})$")


class ValueMode(str, Enum):
    """How a flag takes its value on the command line."""

    REQUIRED = "REQUIRED"
    OPTIONAL = "OPTIONAL"


def format_allowed_values(names: Iterable[str]) -> str:
    """Render allowed values the way help and error messages list them."""
    return "".join(f"\n\t- {name}" for name in names)


class Argument(Generic[T]):
    """A single named option with a default, a parse step and a validator."""

    value_mode = ValueMode.REQUIRED
    metavar: str | None = "VALUE"

    def __init__(
        self,
        prototype: str,
        description: str,
        default: T | None = None,
        *,
        required: bool = False,
        repeatable: bool = False,
        missing_message: str | None = None,
    ) -> None:
        self.names: tuple[str, ...] = tuple(name for name in prototype.split("|") if name)
        if not self.names:
            raise ValueError("An argument needs at least one name")
        self.description = description
        self.default = default
        self.is_required = required
        self.repeatable = repeatable
        self.missing_message = missing_message
        self.was_set = False
        self.value: Any = [] if repeatable else default

    @property
    def name(self) -> str:
        return self.names[0]

    @property
    def flag(self) -> str:
        return _spell(self.name)

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def action(self, raw_value: str | None) -> ArgumentProblem | None:
        """Apply one occurrence of the flag."""
        try:
            converted = self.convert(raw_value)
        except ValueError as exc:
            return ArgumentProblem.format_error(str(exc), self.name)
        if self.repeatable:
            self.value.append(converted)
        else:
            self.value = converted
        self.was_set = True
        return None

    def validate(self) -> ArgumentProblem | None:
        if self.is_required and not self.was_set and not self.has_default:
            message = self.missing_message or f"Required argument {self.flag} was not supplied"
            return ArgumentProblem.validation_error(message, self.name)
        return self.check()

    def convert(self, raw_value: str | None) -> T:
        if raw_value is None:
            raise ValueError(f"Missing value for {self.flag}")
        return raw_value  # type: ignore[return-value]

    def check(self) -> ArgumentProblem | None:
        return None

    def allowed_values(self) -> tuple[str, ...]:
        return ()

    def spellings(self) -> str:
        rendered = ", ".join(_spell(name) for name in self.names)
        if self.metavar is None:
            return rendered
        if self.value_mode is ValueMode.OPTIONAL:
            return f"{rendered}[={self.metavar}]"
        return f"{rendered}={self.metavar}"


class StringArgument(Argument[str]):
    """Free-form string option."""


class RequiredStringArgument(StringArgument):
    def __init__(self, prototype: str, description: str, **kwargs: Any) -> None:
        super().__init__(prototype, description, required=True, **kwargs)

    def check(self) -> ArgumentProblem | None:
        if not self.value:
            message = self.missing_message or f"Required argument {self.flag} was not supplied"
            return ArgumentProblem.validation_error(message, self.name)
        return None


class PathArgument(Argument[Path]):
    """Path option; relative values are rooted at the current directory."""

    metavar = "PATH"

    def __init__(
        self,
        prototype: str,
        description: str,
        default: Path | str | None = None,
        *,
        must_exist: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            prototype,
            description,
            None if default is None else Path(default),
            **kwargs,
        )
        self.must_exist = must_exist

    def convert(self, raw_value: str | None) -> Path:
        if not raw_value:
            raise ValueError(f"{self.flag} requires a path")
        path = Path(raw_value).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        return path

    def check(self) -> ArgumentProblem | None:
        if self.must_exist and self.value is not None and not Path(self.value).exists():
            return ArgumentProblem.validation_error(
                f"Path supplied in {self.flag} does not exist: {self.value}", self.name
            )
        return None


class RequiredPathArgument(PathArgument):
    def __init__(self, prototype: str, description: str, **kwargs: Any) -> None:
        super().__init__(prototype, description, required=True, **kwargs)


class IntArgument(Argument[int]):
    metavar = "NUMBER"

    def convert(self, raw_value: str | None) -> int:
        try:
            return int(raw_value or "")
        except ValueError as exc:
            raise ValueError(f"{self.flag} must be an integer") from exc


class TimeSpanArgument(Argument[timedelta]):
    """Duration given either as whole seconds or as ``[d.]hh:mm:ss``."""

    metavar = "TIMESPAN"

    def convert(self, raw_value: str | None) -> timedelta:
        text = (raw_value or "").strip()
        if text.isdigit():
            return timedelta(seconds=int(text))
        match = _TIMESPAN_PATTERN.match(text)
        if match is None:
            raise ValueError(
                f"{self.flag} must be an integer - a number of seconds, "
                "or a timespan (00:30:00)"
            )
        parts = {key: int(value or 0) for key, value in match.groupdict().items()}
        return timedelta(**parts)


class SwitchArgument(Argument[bool]):
    """Boolean flag; a bare flag means ``True``."""

    value_mode = ValueMode.OPTIONAL
    metavar = None

    def __init__(self, prototype: str, description: str, default: bool = False, **kwargs: Any) -> None:
        super().__init__(prototype, description, default, **kwargs)

    @property
    def has_default(self) -> bool:
        return True

    def convert(self, raw_value: str | None) -> bool:
        if raw_value is None:
            return True
        lowered = raw_value.strip().lower()
        if lowered in _TRUE_LITERALS:
            return True
        if lowered in _FALSE_LITERALS:
            return False
        raise ValueError(
            f"Invalid value '{raw_value}' supplied in {self.flag}. "
            "Use one of true, false, on, off, 1, 0"
        )


class RepeatableArgument(Argument[str]):
    """Ordered list of raw strings; duplicates are kept."""

    def __init__(self, prototype: str, description: str, **kwargs: Any) -> None:
        super().__init__(prototype, description, repeatable=True, **kwargs)

    @property
    def has_default(self) -> bool:
        return True


class EnumArgument(Argument[E]):
    """Option parsed against the values of a string enum."""

    def __init__(
        self,
        prototype: str,
        description: str,
        enum_type: type[E],
        default: E | None = None,
        *,
        invalid_values: Collection[E] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(prototype, description, default, **kwargs)
        self.enum_type = enum_type
        self.invalid_values = frozenset(invalid_values)

    @property
    def has_default(self) -> bool:
        return self.repeatable or self.default is not None

    def allowed_values(self) -> tuple[str, ...]:
        return tuple(
            str(member.value) for member in self.enum_type if member not in self.invalid_values
        )

    def convert(self, raw_value: str | None) -> E:
        text = (raw_value or "").strip()
        if text and not text.isdigit():
            for member in self.enum_type:
                if member in self.invalid_values:
                    continue
                if str(member.value).lower() == text.lower():
                    return member
        raise ValueError(
            f"Invalid value '{raw_value}' supplied in {self.flag}. Valid values are:"
            + format_allowed_values(self.allowed_values())
        )


class KeyValueArgument(Argument[tuple[str, str]]):
    """Repeatable ``key=value`` pairs, split on the first ``=``."""

    metavar = "KEY=VALUE"

    def __init__(self, prototype: str, description: str, label: str = "env", **kwargs: Any) -> None:
        super().__init__(prototype, description, repeatable=True, **kwargs)
        self.label = label

    @property
    def has_default(self) -> bool:
        return True

    def convert(self, raw_value: str | None) -> tuple[str, str]:
        key, separator, value = (raw_value or "").partition("=")
        if not separator or not key:
            raise ValueError(
                f"The {self.flag} argument expects 'key=value' format. "
                f"Invalid format found in '{raw_value}'"
            )
        return key, value

    def check(self) -> ArgumentProblem | None:
        seen: set[str] = set()
        for key, _ in self.value:
            if key in seen:
                return ArgumentProblem.validation_error(
                    f"Duplicate {self.label} name '{key}' found", self.name
                )
            seen.add(key)
        return None

    def as_dict(self) -> dict[str, str]:
        return dict(self.value)


class IntRangeArgument(Argument[int]):
    """Repeatable integer option restricted to an inclusive range."""

    metavar = "NUMBER"

    def __init__(
        self,
        prototype: str,
        description: str,
        *,
        label: str,
        minimum: int,
        maximum: int,
        **kwargs: Any,
    ) -> None:
        super().__init__(prototype, description, repeatable=True, **kwargs)
        self.label = label
        self.minimum = minimum
        self.maximum = maximum

    @property
    def has_default(self) -> bool:
        return True

    def convert(self, raw_value: str | None) -> int:
        try:
            return int(raw_value or "")
        except ValueError as exc:
            raise ValueError(f"{self.label} '{raw_value}' must be an integer") from exc

    def check(self) -> ArgumentProblem | None:
        for number in self.value:
            if not self.minimum <= number <= self.maximum:
                return ArgumentProblem.validation_error(
                    f"{self.label} {number} is not supported. "
                    f"Supported range is {self.minimum}-{self.maximum}",
                    self.name,
                )
        return None


@dataclass(frozen=True)
class PluginReference:
    """A ``[<path>,]<type>`` pointer to a pluggable component."""

    type_name: str
    path: Path | None = None


class PathAndTypeArgument(Argument[PluginReference]):
    """Option naming a plugin type, optionally together with the file providing it."""

    metavar = "[PATH,]TYPE"

    def __init__(
        self,
        prototype: str,
        description: str,
        *,
        label: str,
        default_type: str | None = None,
        path_required: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(prototype, description, **kwargs)
        self.label = label
        self.default_type = default_type
        self.path_required = path_required

    @property
    def has_default(self) -> bool:
        return self.repeatable or self.default is not None

    def references(self) -> tuple[PluginReference, ...]:
        if self.repeatable:
            return tuple(self.value)
        return () if self.value is None else (self.value,)

    def convert(self, raw_value: str | None) -> PluginReference:
        text = (raw_value or "").strip()
        if "," in text:
            raw_path, _, type_name = text.rpartition(",")
            type_name = type_name.strip() or self.default_type or ""
        elif self.path_required:
            raw_path, type_name = text, self.default_type or ""
        else:
            raw_path, type_name = "", text
        if not type_name:
            raise ValueError(f"{self.flag} expects '<path>,<type>' but no type was given in '{raw_value}'")
        path = None
        if raw_path.strip():
            path = Path(raw_path.strip()).expanduser()
            if not path.is_absolute():
                path = Path.cwd() / path
        return PluginReference(type_name=type_name, path=path)

    def check(self) -> ArgumentProblem | None:
        for reference in self.references():
            if reference.path is None:
                if self.path_required:
                    return ArgumentProblem.validation_error(
                        f"Empty path to {self.label} assembly", self.name
                    )
                continue
            if not reference.path.exists():
                return ArgumentProblem.validation_error(
                    f"Failed to find the {self.label} assembly at {reference.path}", self.name
                )
        return None


def _spell(name: str) -> str:
    return f"-{name}" if len(name) == 1 else f"--{name}"

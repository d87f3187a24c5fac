"""Dynamic value protocol of the embedded scripting engine.

Generated adapters receive and return these objects. Conversions follow the
engine's "compatible" rules: an int parameter also accepts floats, bools and
numeric strings, a string parameter accepts anything but undefined.
"""

import logging
import numbers
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ObjectError(Exception):
    """Error raised by a callable invoked from the scripting engine."""


class WrongNumArgumentsError(ObjectError):
    """The callable was invoked with the wrong number of arguments."""

    def __init__(self):
        super().__init__("wrong number of arguments")


class InvalidArgumentTypeError(ObjectError):
    """An argument could not be converted to the native parameter type."""

    def __init__(self, name: str, expected: str, found: str):
        super().__init__(
            f"invalid type for argument '{name}': expected {expected}, found {found}"
        )
        self.name = name
        self.expected = expected
        self.found = found


class InvalidReturnValueError(ObjectError):
    """A native function returned something other than its annotation says."""

    def __init__(self, expected: str, found: str):
        super().__init__(f"invalid return value: expected {expected}, found {found}")
        self.expected = expected
        self.found = found


class Object:
    """Base class for all engine values."""

    type_name = "object"

    def is_falsy(self) -> bool:
        return False


@dataclass(frozen=True)
class Int(Object):
    value: int
    type_name = "int"

    def is_falsy(self) -> bool:
        return self.value == 0

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Float(Object):
    value: float
    type_name = "float"

    def is_falsy(self) -> bool:
        return self.value != self.value  # NaN

    def __str__(self) -> str:
        return repr(self.value)


@dataclass(frozen=True)
class String(Object):
    value: str
    type_name = "string"

    def is_falsy(self) -> bool:
        return len(self.value) == 0

    def __str__(self) -> str:
        return f'"{self.value}"'


@dataclass(frozen=True)
class Bool(Object):
    value: bool
    type_name = "bool"

    def is_falsy(self) -> bool:
        return not self.value

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class Array(Object):
    value: list[Object] = field(default_factory=list)
    type_name = "array"

    def is_falsy(self) -> bool:
        return len(self.value) == 0

    def __str__(self) -> str:
        return "[" + ", ".join(str(v) for v in self.value) + "]"


@dataclass(frozen=True)
class ImmutableArray(Array):
    type_name = "immutable-array"


@dataclass(frozen=True)
class Error(Object):
    """Error value returned to scripts instead of a normal result."""

    value: Object
    type_name = "error"

    def is_falsy(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"error: {self.value}"


class Undefined(Object):
    type_name = "undefined"

    def is_falsy(self) -> bool:
        return True

    def __str__(self) -> str:
        return "<undefined>"

    def __repr__(self) -> str:
        return "UNDEFINED"


UNDEFINED = Undefined()
TRUE = Bool(True)
FALSE = Bool(False)


@dataclass(frozen=True)
class UserFunction(Object):
    """A named native callable registered in a builtin module table."""

    name: str
    value: Callable[..., Object]
    type_name = "user-function"

    def call(self, *args: Object) -> Object:
        return self.value(*args)

    def __str__(self) -> str:
        return f"<user-function {self.name}>"


# -----------------------------------------------------------------------------
# Conversions from engine values to native values.
# Each returns None when the object is not compatible.
# -----------------------------------------------------------------------------


def to_int(obj: Object) -> int | None:
    if isinstance(obj, Int):
        return obj.value
    if isinstance(obj, Float):
        if obj.value != obj.value or obj.value in (float("inf"), float("-inf")):
            return None
        return int(obj.value)
    if isinstance(obj, Bool):
        return 1 if obj.value else 0
    if isinstance(obj, String):
        if not _is_plain_number(obj.value):
            return None
        try:
            return int(obj.value, 10)
        except ValueError:
            return None
    return None


def to_int64(obj: Object) -> int | None:
    value = to_int(obj)
    if value is None or value < INT64_MIN or value > INT64_MAX:
        return None
    return value


def to_float(obj: Object) -> float | None:
    if isinstance(obj, Float):
        return obj.value
    if isinstance(obj, Int):
        return float(obj.value)
    if isinstance(obj, String):
        if not _is_plain_number(obj.value):
            return None
        try:
            return float(obj.value)
        except ValueError:
            return None
    return None


def _is_plain_number(text: str) -> bool:
    # int() and float() also accept digit separators and padding
    return "_" not in text and not any(c.isspace() for c in text)


def to_string(obj: Object) -> str | None:
    if obj is UNDEFINED:
        return None
    if isinstance(obj, String):
        return obj.value
    return str(obj)


def to_bool(obj: Object) -> bool:
    return not obj.is_falsy()


def to_list(
    obj: Object,
    convert: Callable[[Object], Any],
    name: str,
    expected: str,
) -> list[Any]:
    """Convert an engine array into a native list of converted elements.

    Raises:
        InvalidArgumentTypeError: If obj is not an array or an element is
            not compatible; element errors are named like ``first[2]``.
    """
    if not isinstance(obj, Array):
        raise InvalidArgumentTypeError(name, "array", obj.type_name)

    values = []
    for idx, item in enumerate(obj.value):
        converted = convert(item)
        if converted is None:
            raise InvalidArgumentTypeError(f"{name}[{idx}]", expected, item.type_name)
        values.append(converted)
    return values


# -----------------------------------------------------------------------------
# Conversions from native values to engine values.
# Each raises InvalidReturnValueError when the value does not match.
# -----------------------------------------------------------------------------


def from_bool(value: bool) -> Bool:
    if not isinstance(value, bool):
        raise InvalidReturnValueError("bool", type(value).__name__)
    return TRUE if value else FALSE


def from_int(value: int) -> Int:
    if not isinstance(value, numbers.Integral):
        raise InvalidReturnValueError("int", type(value).__name__)
    return Int(int(value))


def from_int64(value: int) -> Int:
    result = from_int(value)
    if result.value < INT64_MIN or result.value > INT64_MAX:
        raise InvalidReturnValueError("int64", "int out of range")
    return result


def from_float(value: float) -> Float:
    if not isinstance(value, numbers.Real):
        raise InvalidReturnValueError("float", type(value).__name__)
    return Float(float(value))


def from_string(value: str) -> String:
    if not isinstance(value, str):
        raise InvalidReturnValueError("str", type(value).__name__)
    return String(value)


def from_list(values: list[Any], wrap: Callable[[Any], Object]) -> Array:
    if not isinstance(values, (list, tuple)):
        raise InvalidReturnValueError("list", type(values).__name__)
    return Array([wrap(v) for v in values])


def unpack_results(returned: Any, count: int) -> tuple[Any, ...]:
    """Check a multi-result return is a tuple of exactly count values."""
    if not isinstance(returned, (tuple, list)):
        raise InvalidReturnValueError(
            f"tuple of {count} results", type(returned).__name__
        )
    if len(returned) != count:
        raise InvalidReturnValueError(
            f"tuple of {count} results", f"{len(returned)} results"
        )
    return tuple(returned)


def wrap_error(err: BaseException) -> Error:
    """Translate a native error into the engine's error value."""
    if not isinstance(err, BaseException):
        raise InvalidReturnValueError("Exception | None", type(err).__name__)
    return Error(String(str(err)))


def to_callable_func(fn: Callable[..., Any]) -> Callable[..., Object]:
    """Request a generated adapter for fn.

    The generator replaces calls to this marker with the adapter for fn's
    signature. Until then the returned callable does nothing.
    """

    def placeholder(*args: Object) -> Object:
        logger.warning(f"Adapter for {getattr(fn, '__name__', fn)!r} was not generated")
        return UNDEFINED

    return placeholder

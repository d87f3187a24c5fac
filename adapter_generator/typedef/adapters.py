"""Build adapters that call native functions from the scripting engine.

The value codecs here are shared with the source renderer, so a bound
adapter and its rendered source behave the same way.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from adapter_generator import objects
from adapter_generator.objects import (
    UNDEFINED,
    Array,
    InvalidArgumentTypeError,
    Object,
    WrongNumArgumentsError,
)
from adapter_generator.typedef.signature import Signature
from adapter_generator.typedef.types import Type, TypeKind, UnsupportedTypeError


ORDINALS = (
    "first",
    "second",
    "third",
    "fourth",
    "fifth",
    "sixth",
    "seventh",
    "eighth",
    "ninth",
    "tenth",
)


@dataclass(frozen=True)
class ValueCodec:
    """Names of the objects-module functions converting one native type."""

    convert: str  # engine value -> native value, None when incompatible
    expected: str  # type description used in argument errors
    wrap: str  # native value -> engine value


VALUE_CODECS: Mapping[str, ValueCodec] = MappingProxyType(
    {
        "bool": ValueCodec("to_bool", "bool", "from_bool"),
        "int": ValueCodec("to_int", "int(compatible)", "from_int"),
        "int64": ValueCodec("to_int64", "int(compatible)", "from_int64"),
        "float": ValueCodec("to_float", "float(compatible)", "from_float"),
        "str": ValueCodec("to_string", "string(compatible)", "from_string"),
    }
)


def ordinal(index: int) -> str:
    """Argument name used in errors: first, second, ..."""
    if index < len(ORDINALS):
        return ORDINALS[index]
    return f"#{index + 1}"


def codec_for(type_: Type) -> ValueCodec:
    """Return the codec for a parameter or non-error result type.

    Raises:
        UnsupportedTypeError: If values of the type can not cross the bridge
    """
    codec = VALUE_CODECS.get(type_.name)
    if codec is None or type_.kind is TypeKind.NAMED:
        raise UnsupportedTypeError(str(type_), "no value conversion for this type")
    return codec


def value_results(signature: Signature) -> tuple[Type, ...]:
    """Results returned to scripts, without the trailing error."""
    if signature.returns_error:
        return signature.results[:-1]
    return signature.results


def check_signature(signature: Signature) -> None:
    """Check every type of the signature can be converted.

    An error result is only allowed in the last position.

    Raises:
        UnsupportedTypeError: If a parameter or result can not be converted
    """
    for type_ in signature.params:
        codec_for(type_)
    for type_ in value_results(signature):
        codec_for(type_)


def unwrap(arg: Object, type_: Type, name: str) -> Any:
    """Convert one engine argument to the native parameter type."""
    codec = codec_for(type_)
    convert = getattr(objects, codec.convert)
    if type_.kind is TypeKind.SEQUENCE:
        return objects.to_list(arg, convert, name, codec.expected)
    value = convert(arg)
    if value is None:
        raise InvalidArgumentTypeError(name, codec.expected, arg.type_name)
    return value


def wrap(value: Any, type_: Type) -> Object:
    """Convert one native result to an engine value."""
    codec = codec_for(type_)
    wrapper = getattr(objects, codec.wrap)
    if type_.kind is TypeKind.SEQUENCE:
        return objects.from_list(value, wrapper)
    return wrapper(value)


def wrap_results(returned: Any, signature: Signature) -> Object:
    """Convert what the native function returned to the adapter's result.

    A trailing error result that is not None replaces all other results with
    the engine's error value.

    Raises:
        InvalidReturnValueError: If the returned values do not match the
            declared results
    """
    count = len(signature.results)
    if count == 0:
        return UNDEFINED

    values = (returned,) if count == 1 else objects.unpack_results(returned, count)
    if signature.returns_error:
        err = values[-1]
        if err is not None:
            return objects.wrap_error(err)
        values = values[:-1]

    wrapped = [wrap(v, t) for v, t in zip(values, value_results(signature))]
    if not wrapped:
        return UNDEFINED
    if len(wrapped) == 1:
        return wrapped[0]
    return Array(wrapped)


def bind(signature: Signature, fn: Callable[..., Any], name: str = "adapter") -> Callable[..., Object]:
    """Build the adapter for fn with the given signature.

    Args:
        signature: The signature fn was declared with
        fn: The native function
        name: Name given to the adapter callable

    Returns:
        A callable taking engine objects and returning an engine object
    """
    check_signature(signature)
    params = signature.params

    def adapter(*args: Object) -> Object:
        if len(args) != len(params):
            raise WrongNumArgumentsError()
        native_args = [unwrap(arg, t, ordinal(i)) for i, (arg, t) in enumerate(zip(args, params))]
        return wrap_results(fn(*native_args), signature)

    adapter.__name__ = name
    adapter.__qualname__ = name
    adapter.__doc__ = f"Adapter for {signature}."
    return adapter

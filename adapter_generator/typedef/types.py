"""Type model: native types as relevant to adaptation."""

from dataclasses import dataclass
from enum import Enum

import libcst as cst

from adapter_generator.analysis import dotted_name, node_source
from adapter_generator.models import GenerationError


class TypeKind(Enum):
    BASIC = "basic"
    NAMED = "named"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class Type:
    """A native type; for sequences, name is the element's name."""

    kind: TypeKind
    name: str

    def __str__(self) -> str:
        if self.kind is TypeKind.SEQUENCE:
            return f"[]{self.name}"
        return self.name


class UnsupportedTypeError(GenerationError):
    """A type shape the type model can not represent."""

    def __init__(self, description: str, reason: str = "type shape is not supported"):
        super().__init__(f"can not convert type {description}: {reason}")
        self.description = description
        self.reason = reason


ERROR_TYPE = Type(TypeKind.NAMED, "error")

# Annotation spelling -> canonical basic type name
BASIC_TYPES = {
    "bool": "bool",
    "int": "int",
    "float": "float",
    "str": "str",
    "bytes": "bytes",
    "complex": "complex",
    "int64": "int64",
    "numpy.int64": "int64",
    "np.int64": "int64",
    "ctypes.c_int64": "int64",
}

ERROR_NAMES = {"Exception", "BaseException", "builtins.Exception", "error"}

SEQUENCE_NAMES = {
    "list",
    "List",
    "typing.List",
    "Sequence",
    "typing.Sequence",
    "collections.abc.Sequence",
}

OPTIONAL_NAMES = {"Optional", "typing.Optional"}
UNION_NAMES = {"Union", "typing.Union"}

# Plain names that look like named types but are composite or dynamic
UNSUPPORTED_NAMES = {
    "None",
    "object",
    "type",
    "tuple",
    "Tuple",
    "typing.Tuple",
    "dict",
    "Dict",
    "typing.Dict",
    "set",
    "Set",
    "typing.Set",
    "frozenset",
    "Any",
    "typing.Any",
    "Callable",
    "typing.Callable",
    "collections.abc.Callable",
    "Iterable",
    "typing.Iterable",
    "Mapping",
    "typing.Mapping",
}


def convert_annotation(expr: cst.BaseExpression) -> Type:
    """Convert an annotation expression to a Type.

    Args:
        expr: The annotation expression (without the leading colon/arrow)

    Returns:
        The converted Type

    Raises:
        UnsupportedTypeError: If the annotation is not a basic type, a named
            type, the error type or a sequence of a basic type
    """
    if isinstance(expr, (cst.SimpleString, cst.ConcatenatedString)):
        return convert_annotation(_parse_forward_reference(expr))

    if is_error_annotation(expr):
        return ERROR_TYPE

    name = dotted_name(expr)
    if name is not None:
        if name in BASIC_TYPES:
            return Type(TypeKind.BASIC, BASIC_TYPES[name])
        if name in UNSUPPORTED_NAMES or name in SEQUENCE_NAMES:
            raise UnsupportedTypeError(name)
        return Type(TypeKind.NAMED, name)

    if isinstance(expr, cst.Subscript) and dotted_name(expr.value) in SEQUENCE_NAMES:
        return _convert_sequence(expr)

    raise UnsupportedTypeError(node_source(expr))


def is_error_annotation(expr: cst.BaseExpression) -> bool:
    """Return True for ``Exception``, ``Exception | None`` and similar."""
    if dotted_name(expr) in ERROR_NAMES:
        return True

    if isinstance(expr, cst.BinaryOperation) and isinstance(expr.operator, cst.BitOr):
        return _is_error_or_none([expr.left, expr.right])

    if isinstance(expr, cst.Subscript):
        base = dotted_name(expr.value)
        args = subscript_arguments(expr)
        if base in OPTIONAL_NAMES and len(args) == 1:
            return is_error_annotation(args[0])
        if base in UNION_NAMES:
            return _is_error_or_none(args)

    return False


def _is_error_or_none(members: list[cst.BaseExpression]) -> bool:
    non_none = [m for m in members if dotted_name(m) != "None"]
    return len(non_none) == 1 and is_error_annotation(non_none[0])


def subscript_arguments(expr: cst.Subscript) -> list[cst.BaseExpression]:
    """Return the index expressions of ``base[a, b]``."""
    args = []
    for element in expr.slice:
        if not isinstance(element.slice, cst.Index):
            raise UnsupportedTypeError(node_source(expr), "slices are not type arguments")
        args.append(element.slice.value)
    return args


def _convert_sequence(expr: cst.Subscript) -> Type:
    description = node_source(expr)
    args = subscript_arguments(expr)
    if len(args) != 1:
        raise UnsupportedTypeError(description, "sequence takes exactly one element type")

    try:
        element = convert_annotation(args[0])
    except UnsupportedTypeError as e:
        raise UnsupportedTypeError(description, f"element {e.reason}") from e

    if element.kind is not TypeKind.BASIC:
        raise UnsupportedTypeError(
            description, f"element type {element} is not a basic type"
        )
    return Type(TypeKind.SEQUENCE, element.name)


def _parse_forward_reference(expr: cst.BaseString) -> cst.BaseExpression:
    text = expr.evaluated_value
    if not isinstance(text, str):
        raise UnsupportedTypeError(node_source(expr), "not a string annotation")
    try:
        return cst.parse_expression(text.strip())
    except cst.ParserSyntaxError as e:
        raise UnsupportedTypeError(repr(text), "invalid forward reference") from e

"""Signature model: ordered parameter and result types of a function."""

from dataclasses import dataclass

import libcst as cst

from adapter_generator.analysis import FunctionDeclaration, dotted_name
from adapter_generator.typedef.types import (
    ERROR_TYPE,
    Type,
    UnsupportedTypeError,
    convert_annotation,
    subscript_arguments,
)

TUPLE_NAMES = {"tuple", "Tuple", "typing.Tuple"}


def render_tuple(types: tuple[Type, ...]) -> str:
    return ", ".join(str(t) for t in types)


@dataclass(frozen=True)
class Signature:
    """Parameter and result types; the rendered form is the structural key."""

    params: tuple[Type, ...] = ()
    results: tuple[Type, ...] = ()

    def __str__(self) -> str:
        return f"({render_tuple(self.params)}) -> ({render_tuple(self.results)})"

    @property
    def key(self) -> str:
        return str(self)

    @property
    def returns_error(self) -> bool:
        return bool(self.results) and self.results[-1] == ERROR_TYPE


def signature_from_declaration(decl: FunctionDeclaration) -> Signature:
    """Convert a resolved function declaration to a Signature.

    Args:
        decl: The declaration the wrapped reference resolved to

    Returns:
        The Signature of the declaration

    Raises:
        UnsupportedTypeError: If the function or one of its types can not be
            adapted
    """
    node = decl.node
    if decl.overloaded:
        raise UnsupportedTypeError(
            decl.qualified_name, "overloaded functions are not supported"
        )
    if node.asynchronous is not None:
        raise UnsupportedTypeError(decl.qualified_name, "async functions can not be adapted")

    params = node.params
    if isinstance(params.star_arg, cst.Param) or params.star_kwarg is not None:
        raise UnsupportedTypeError(decl.qualified_name, "variadic parameters are not supported")
    if params.kwonly_params:
        raise UnsupportedTypeError(
            decl.qualified_name, "keyword-only parameters are not supported"
        )

    positional = [*params.posonly_params, *params.params]
    if decl.skip_first_param:
        positional = positional[1:]

    param_types = []
    for param in positional:
        param_name = param.name.value
        if param.annotation is None:
            raise UnsupportedTypeError(
                decl.qualified_name, f"parameter '{param_name}' has no annotation"
            )
        try:
            param_types.append(convert_annotation(param.annotation.annotation))
        except UnsupportedTypeError as e:
            raise UnsupportedTypeError(
                e.description,
                f"{e.reason} (parameter '{param_name}' of {decl.qualified_name})",
            ) from e

    if node.returns is None:
        raise UnsupportedTypeError(decl.qualified_name, "missing return annotation")
    try:
        result_types = convert_results(node.returns.annotation)
    except UnsupportedTypeError as e:
        raise UnsupportedTypeError(
            e.description, f"{e.reason} (result of {decl.qualified_name})"
        ) from e

    return Signature(params=tuple(param_types), results=result_types)


def convert_results(expr: cst.BaseExpression) -> tuple[Type, ...]:
    """Convert a return annotation to the tuple of result types.

    ``None`` means no results and ``tuple[A, B]`` means two results.
    """
    if isinstance(expr, (cst.SimpleString, cst.ConcatenatedString)):
        text = expr.evaluated_value
        if isinstance(text, str):
            try:
                return convert_results(cst.parse_expression(text.strip()))
            except cst.ParserSyntaxError:
                pass

    if dotted_name(expr) == "None":
        return ()

    if isinstance(expr, cst.Subscript) and dotted_name(expr.value) in TUPLE_NAMES:
        args = subscript_arguments(expr)
        if len(args) == 1 and isinstance(args[0], cst.Tuple) and not args[0].elements:
            return ()
        if any(isinstance(a, cst.Ellipsis) for a in args):
            raise UnsupportedTypeError(
                "tuple[...]", "variable-length tuples are not supported"
            )
        return tuple(convert_annotation(a) for a in args)

    return (convert_annotation(expr),)

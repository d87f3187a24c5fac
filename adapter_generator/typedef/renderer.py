"""Render generated adapters as Python source."""

import logging

from adapter_generator.typedef.adapters import codec_for, ordinal, value_results
from adapter_generator.typedef.registry import GeneratedAdapter
from adapter_generator.typedef.types import Type, TypeKind

logger = logging.getLogger(__name__)

INDENT = "    "

MODULE_IMPORTS = """from adapter_generator.objects import (
    UNDEFINED,
    Array,
    InvalidArgumentTypeError,
    WrongNumArgumentsError,
    from_bool,
    from_float,
    from_int,
    from_int64,
    from_list,
    from_string,
    to_bool,
    to_float,
    to_int,
    to_int64,
    to_list,
    to_string,
    unpack_results,
    wrap_error,
)"""


def render_adapter(adapter: GeneratedAdapter) -> str:
    """Render one adapter factory: ``def FuncAIRI(fn): ... return adapter``.

    Args:
        adapter: The adapter to render

    Returns:
        Python source of the factory function
    """
    signature = adapter.signature
    body: list[str] = [
        f"if len(args) != {len(signature.params)}:",
        f"{INDENT}raise WrongNumArgumentsError()",
    ]

    arg_names = []
    for index, type_ in enumerate(signature.params):
        arg_name = f"a{index + 1}"
        arg_names.append(arg_name)
        body.extend(_render_unwrap(arg_name, index, type_))

    call = f"fn({', '.join(arg_names)})"
    if not signature.results:
        body.append(call)
        body.append("return UNDEFINED")
    else:
        result_names = [f"r{i + 1}" for i in range(len(signature.results))]
        if len(result_names) == 1:
            body.append(f"r1 = {call}")
        else:
            body.append(
                f"{', '.join(result_names)} = unpack_results({call}, {len(result_names)})"
            )
        if signature.returns_error:
            err = result_names.pop()
            body.append(f"if {err} is not None:")
            body.append(f"{INDENT}return wrap_error({err})")
        wrapped = [_render_wrap(n, t) for n, t in zip(result_names, value_results(signature))]
        if not wrapped:
            body.append("return UNDEFINED")
        elif len(wrapped) == 1:
            body.append(f"return {wrapped[0]}")
        else:
            body.append(f"return Array([{', '.join(wrapped)}])")

    lines = [
        f"def {adapter.name}(fn):",
        f'{INDENT}"""Adapter for {signature}."""',
        "",
        f"{INDENT}def adapter(*args):",
        *(f"{INDENT * 2}{line}" for line in body),
        "",
        f"{INDENT}adapter.__name__ = {adapter.name!r}",
        f"{INDENT}return adapter",
    ]
    return "\n".join(lines)


def render_module(adapters: list[GeneratedAdapter], origin: str | None = None) -> str:
    """Render a complete module with one factory per adapter.

    Args:
        adapters: Adapters to render, in order
        origin: Optional description of the analyzed sources for the header

    Returns:
        Python source of the module
    """
    logger.info(f"Rendering {len(adapters)} adapters")

    header = '"""Generated adapters. Do not edit.'
    if origin:
        header += f"\n\nGenerated from {origin}."
    header += '\n"""'

    names = ", ".join(repr(a.name) for a in adapters)
    parts = [header, MODULE_IMPORTS, f"__all__ = [{names}]"]
    parts.extend(render_adapter(a) for a in adapters)
    return "\n\n\n".join(parts) + "\n"


def _render_unwrap(arg_name: str, index: int, type_: Type) -> list[str]:
    codec = codec_for(type_)
    name = ordinal(index)
    if type_.kind is TypeKind.SEQUENCE:
        return [
            f'{arg_name} = to_list(args[{index}], {codec.convert}, "{name}", "{codec.expected}")'
        ]
    lines = [f"{arg_name} = {codec.convert}(args[{index}])"]
    lines.append(f"if {arg_name} is None:")
    lines.append(
        f'{INDENT}raise InvalidArgumentTypeError("{name}", "{codec.expected}", args[{index}].type_name)'
    )
    return lines


def _render_wrap(result_name: str, type_: Type) -> str:
    codec = codec_for(type_)
    if type_.kind is TypeKind.SEQUENCE:
        return f"from_list({result_name}, {codec.wrap})"
    return f"{codec.wrap}({result_name})"

"""Replace marker calls with calls to the generated adapters."""

import logging
from collections.abc import Iterable, Mapping

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider

from adapter_generator.analysis import AnalysisUnit, dotted_name
from adapter_generator.typedef.registry import GeneratedAdapter

logger = logging.getLogger(__name__)

# (line, column) of a call, both 1-based, as in SourcePosition
Replacements = Mapping[tuple[int, int], str]


class _MarkerCallRewriter(cst.CSTTransformer):
    METADATA_DEPENDENCIES = (PositionProvider,)

    def __init__(self, replacements: Replacements):
        super().__init__()
        self.replacements = replacements
        self.applied: list[str] = []

    def leave_Call(self, original_node: cst.Call, updated_node: cst.Call) -> cst.Call:
        start = self.get_metadata(PositionProvider, original_node).start
        name = self.replacements.get((start.line, start.column + 1))
        if name is None:
            return updated_node
        self.applied.append(name)
        return updated_node.with_changes(func=cst.Name(name))


def replacements_for(adapters: Iterable[GeneratedAdapter], filename: str) -> dict[tuple[int, int], str]:
    """Collect the adapter name for every call site in one file."""
    replacements = {}
    for adapter in adapters:
        for call_site in adapter.call_sites:
            location = call_site.location
            if location.filename == filename:
                replacements[(location.line, location.column)] = adapter.name
    return replacements


def rewrite_source(source: str, replacements: Replacements, import_from: str | None = None) -> str:
    """Rewrite marker calls at the given positions to call adapters.

    Args:
        source: Python source text
        replacements: Adapter name for each marker call position
        import_from: Module to import the used adapters from, if any

    Returns:
        The rewritten source text
    """
    wrapper = MetadataWrapper(cst.parse_module(source))
    rewriter = _MarkerCallRewriter(replacements)
    rewritten = wrapper.visit(rewriter)

    if len(rewriter.applied) != len(replacements):
        logger.warning(
            f"Rewrote {len(rewriter.applied)} of {len(replacements)} marker calls"
        )
    if import_from and rewriter.applied:
        rewritten = _add_import(rewritten, import_from, sorted(set(rewriter.applied)))
    return rewritten.code


def rewrite_unit(
    unit: AnalysisUnit,
    adapters: list[GeneratedAdapter],
    import_from: str | None = None,
) -> dict[str, str]:
    """Rewrite every module of the unit that contains served call sites.

    Returns:
        Mapping of the rewritten modules' filenames to their new source
    """
    rewritten = {}
    for source in unit.modules:
        replacements = replacements_for(adapters, source.filename)
        if not replacements:
            continue
        rewritten[source.filename] = rewrite_source(source.module.code, replacements, import_from)
        logger.info(f"Rewrote {len(replacements)} calls in {source.filename}")
    return rewritten


def _add_import(module: cst.Module, import_from: str, names: list[str]) -> cst.Module:
    statement = cst.parse_statement(f"from {import_from} import {', '.join(names)}\n")
    body = list(module.body)

    index = 0
    if body and _is_docstring(body[0]):
        index = 1
    while index < len(body) and _is_future_import(body[index]):
        index += 1

    return module.with_changes(body=[*body[:index], statement, *body[index:]])


def _is_docstring(statement: cst.CSTNode) -> bool:
    return (
        isinstance(statement, cst.SimpleStatementLine)
        and len(statement.body) == 1
        and isinstance(statement.body[0], cst.Expr)
        and isinstance(statement.body[0].value, (cst.SimpleString, cst.ConcatenatedString))
    )


def _is_future_import(statement: cst.CSTNode) -> bool:
    return (
        isinstance(statement, cst.SimpleStatementLine)
        and any(
            isinstance(s, cst.ImportFrom) and dotted_name(s.module) == "__future__"
            for s in statement.body
        )
    )

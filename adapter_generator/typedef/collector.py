"""Collect marker calls and the signatures of the functions they wrap."""

import logging
from dataclasses import dataclass, field
from enum import Enum

import libcst as cst

from adapter_generator.analysis import (
    AnalysisUnit,
    ResolutionError,
    SourceModule,
    dotted_parts,
)
from adapter_generator.models import (
    Diagnostic,
    DiagnosticKind,
    GenerationError,
    Severity,
    SourcePosition,
)
from adapter_generator.typedef.signature import Signature, signature_from_declaration
from adapter_generator.typedef.types import UnsupportedTypeError

logger = logging.getLogger(__name__)

DEFAULT_MARKER_NAME = "to_callable_func"


class UnresolvedPolicy(Enum):
    """What to do when a wrapped reference can not be resolved."""

    ABORT = "abort"
    SKIP = "skip"


class UnresolvedReferenceError(GenerationError):
    """The analysis input could not resolve a wrapped reference."""

    def __init__(self, diagnostic: Diagnostic, diagnostics: list[Diagnostic]):
        super().__init__(str(diagnostic))
        self.diagnostic = diagnostic
        self.diagnostics = diagnostics


@dataclass(frozen=True)
class CallSite:
    """A marker call whose argument resolved to an adaptable function."""

    location: SourcePosition
    signature: Signature
    target: str  # the wrapped reference as written, e.g. "random.random"
    module: str

    def to_dict(self) -> dict:
        return {"location": str(self.location), "target": self.target}


@dataclass
class CollectResult:
    call_sites: list[CallSite] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)


class _MarkerCallVisitor(cst.CSTVisitor):
    def __init__(self, marker_name: str):
        super().__init__()
        self.marker_name = marker_name
        self.calls: list[cst.Call] = []

    def visit_Call(self, node: cst.Call) -> bool:
        callee = node.func
        if isinstance(callee, cst.Name) and callee.value == self.marker_name:
            self.calls.append(node)
        elif isinstance(callee, cst.Attribute) and callee.attr.value == self.marker_name:
            self.calls.append(node)
        return True


def collect(
    unit: AnalysisUnit,
    marker_name: str = DEFAULT_MARKER_NAME,
    policy: UnresolvedPolicy = UnresolvedPolicy.ABORT,
) -> CollectResult:
    """Find every marker call in the unit and resolve what it wraps.

    Args:
        unit: The analysis unit to scan
        marker_name: Name of the function whose calls request adapters
        policy: Whether an unresolved reference aborts the scan

    Returns:
        CollectResult with call sites in module order, then source order

    Raises:
        UnresolvedReferenceError: If a reference can not be resolved and
            policy is ABORT
    """
    result = CollectResult()

    for source in unit.modules:
        visitor = _MarkerCallVisitor(marker_name)
        source.wrapper.visit(visitor)
        for call in visitor.calls:
            call_site = _collect_call(unit, source, call, marker_name, policy, result)
            if call_site is not None:
                result.call_sites.append(call_site)

    logger.info(
        f"Collected {len(result.call_sites)} call sites to {marker_name} "
        f"with {len(result.diagnostics)} diagnostics"
    )
    return result


def _collect_call(
    unit: AnalysisUnit,
    source: SourceModule,
    call: cst.Call,
    marker_name: str,
    policy: UnresolvedPolicy,
    result: CollectResult,
) -> CallSite | None:
    location = source.position(call)

    if len(call.args) != 1:
        _warn(
            result,
            location,
            f"wrong argument count: {marker_name} takes 1 argument, got {len(call.args)}",
        )
        return None

    arg = call.args[0]
    parts = dotted_parts(arg.value) if not arg.star else None
    if parts is None:
        _warn(
            result,
            location,
            f"unsupported argument expression for {marker_name}: "
            f"expected a name or dotted reference, got {type(arg.value).__name__}",
        )
        return None

    target = ".".join(parts)
    try:
        declaration = unit.resolve(source, parts)
    except ResolutionError as e:
        diagnostic = Diagnostic(
            Severity.ERROR,
            DiagnosticKind.UNRESOLVED_REFERENCE,
            location,
            f"can not resolve argument '{target}' of {marker_name}: {e}",
        )
        result.diagnostics.append(diagnostic)
        logger.error(str(diagnostic))
        if policy is UnresolvedPolicy.ABORT:
            raise UnresolvedReferenceError(diagnostic, list(result.diagnostics)) from e
        return None

    try:
        signature = signature_from_declaration(declaration)
    except UnsupportedTypeError as e:
        diagnostic = Diagnostic(
            Severity.ERROR,
            DiagnosticKind.UNSUPPORTED_TYPE,
            location,
            f"can not adapt '{target}': {e}",
        )
        result.diagnostics.append(diagnostic)
        logger.error(str(diagnostic))
        return None

    logger.debug(f"Call to {marker_name}({target}) at {location}: {signature}")
    return CallSite(location=location, signature=signature, target=target, module=source.name)


def _warn(result: CollectResult, location: SourcePosition, message: str) -> None:
    diagnostic = Diagnostic(
        Severity.WARNING, DiagnosticKind.MALFORMED_CALL_SITE, location, message
    )
    result.diagnostics.append(diagnostic)
    logger.warning(str(diagnostic))

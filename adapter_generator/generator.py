"""Main generator that orchestrates collection, registration and emission."""

import logging
from collections.abc import Iterable
from pathlib import Path

from adapter_generator.analysis import AnalysisLoadError, AnalysisUnit
from adapter_generator.config import GeneratorConfig
from adapter_generator.models import (
    Diagnostic,
    DiagnosticKind,
    GenerationResult,
    Severity,
)
from adapter_generator.typedef.collector import UnresolvedReferenceError, collect
from adapter_generator.typedef.registry import SignatureRegistry

logger = logging.getLogger(__name__)


def generate(unit: AnalysisUnit, config: GeneratorConfig | None = None) -> GenerationResult:
    """Generate one adapter per distinct signature wrapped in the unit.

    Args:
        unit: The analysis unit to scan
        config: Generator configuration (defaults if omitted)

    Returns:
        GenerationResult with the adapters and all diagnostics; an aborted
        run has no adapters
    """
    config = config or GeneratorConfig()
    logger.info(f"Starting generation for calls to {config.marker_name}")

    try:
        collected = collect(unit, config.marker_name, config.unresolved_policy)
    except UnresolvedReferenceError as e:
        logger.error(f"Aborting generation: {e}")
        return GenerationResult(adapters=[], diagnostics=e.diagnostics, aborted=True)

    registry = SignatureRegistry(config.abbreviations)
    for call_site in collected.call_sites:
        registry.register(call_site)

    adapters = registry.emit()
    diagnostics = [*collected.diagnostics, *registry.diagnostics]
    logger.info(
        f"Generation complete: {len(adapters)} adapters for "
        f"{len(collected.call_sites)} call sites, {len(diagnostics)} diagnostics"
    )
    return GenerationResult(adapters=adapters, diagnostics=diagnostics)


def generate_from_paths(
    paths: Iterable[Path],
    config: GeneratorConfig | None = None,
) -> GenerationResult:
    """Load sources from paths and generate adapters for them.

    A load failure aborts the run with a LOAD_FAILED diagnostic.
    """
    try:
        unit = AnalysisUnit.from_paths(paths)
    except AnalysisLoadError as e:
        return load_failure(e)
    return generate(unit, config)


def load_failure(error: AnalysisLoadError) -> GenerationResult:
    logger.error(f"Load error: {error}")
    diagnostic = Diagnostic(
        Severity.ERROR, DiagnosticKind.LOAD_FAILED, error.location, str(error)
    )
    return GenerationResult(adapters=[], diagnostics=[diagnostic], aborted=True)

"""Generator configuration."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from adapter_generator.typedef.abbreviations import AbbreviationTable
from adapter_generator.typedef.collector import DEFAULT_MARKER_NAME, UnresolvedPolicy

DEFAULT_ADAPTERS_MODULE = "adapters_gen"


@dataclass(frozen=True)
class GeneratorConfig:
    """Knobs for one generation run."""

    marker_name: str = DEFAULT_MARKER_NAME
    abbreviations: AbbreviationTable = field(default_factory=AbbreviationTable)
    unresolved_policy: UnresolvedPolicy = UnresolvedPolicy.ABORT
    adapters_module: str = DEFAULT_ADAPTERS_MODULE

    def __post_init__(self):
        if not self.marker_name.isidentifier():
            raise ValueError(f"marker name must be an identifier, got {self.marker_name!r}")
        if not all(part.isidentifier() for part in self.adapters_module.split(".")):
            raise ValueError(f"invalid adapters module name {self.adapters_module!r}")


def parse_abbreviation_overrides(items: Iterable[str]) -> dict[str, str]:
    """Parse ``TYPE=CODE`` strings, e.g. ``["bytes=Y", "Duration=D"]``.

    Raises:
        ValueError: If an item is not of the form TYPE=CODE
    """
    overrides = {}
    for item in items:
        type_name, sep, code = item.partition("=")
        type_name, code = type_name.strip(), code.strip()
        if not sep or not type_name or not code:
            raise ValueError(f"expected TYPE=CODE, got {item!r}")
        overrides[type_name] = code
    return overrides

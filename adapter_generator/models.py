"""Data models for generation output."""

import json
from dataclasses import dataclass, field
from enum import Enum


class GenerationError(Exception):
    """Base class for errors raised while generating adapters."""


class Severity(Enum):
    WARNING = "warning"
    ERROR = "error"


class DiagnosticKind(Enum):
    UNSUPPORTED_TYPE = "unsupported_type"
    ABBREVIATION = "abbreviation"
    MALFORMED_CALL_SITE = "malformed_call_site"
    UNRESOLVED_REFERENCE = "unresolved_reference"
    NAME_COLLISION = "name_collision"
    LOAD_FAILED = "load_failed"


@dataclass(frozen=True)
class SourcePosition:
    """A 1-based line and column in a source file."""

    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Diagnostic:
    """A problem found while collecting or registering call sites."""

    severity: Severity
    kind: DiagnosticKind
    location: SourcePosition | None
    message: str

    def __str__(self) -> str:
        where = f"{self.location}: " if self.location else ""
        return f"{where}{self.severity.value}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "kind": self.kind.value,
            "location": str(self.location) if self.location else None,
            "message": self.message,
        }


@dataclass
class GenerationResult:
    """Complete result of one generation run."""

    adapters: list  # list[GeneratedAdapter]
    diagnostics: list[Diagnostic] = field(default_factory=list)
    aborted: bool = False

    @property
    def has_errors(self) -> bool:
        return self.aborted or any(
            d.severity is Severity.ERROR for d in self.diagnostics
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "aborted": self.aborted,
            "adapters": [a.to_dict() for a in self.adapters],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

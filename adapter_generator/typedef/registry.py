"""Deduplicate signatures and keep one adapter function per signature."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from adapter_generator.models import Diagnostic, DiagnosticKind, Severity
from adapter_generator.objects import Object
from adapter_generator.typedef import adapters
from adapter_generator.typedef.abbreviations import (
    DEFAULT_TABLE,
    AbbreviationError,
    AbbreviationTable,
)
from adapter_generator.typedef.collector import CallSite
from adapter_generator.typedef.signature import Signature
from adapter_generator.typedef.types import UnsupportedTypeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Function:
    """The generation unit: one adapter for one distinct signature."""

    name: str
    signature: Signature

    @property
    def key(self) -> str:
        return self.signature.key


class RegisterStatus(Enum):
    NEW = "new"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"


@dataclass(frozen=True)
class RegisterOutcome:
    status: RegisterStatus
    function: Function | None = None
    diagnostic: Diagnostic | None = None

    @property
    def served(self) -> bool:
        """True if the call site will get an adapter."""
        return self.function is not None


@dataclass(frozen=True)
class GeneratedAdapter:
    """An adapter to emit, with the call sites that use it."""

    function: Function
    call_sites: tuple[CallSite, ...]

    @property
    def name(self) -> str:
        return self.function.name

    @property
    def signature(self) -> Signature:
        return self.function.signature

    @property
    def description(self) -> str:
        return str(self.function.signature)

    def bind(self, fn: Callable[..., Any]) -> Callable[..., Object]:
        """Build the runtime adapter for a native function of this signature."""
        return adapters.bind(self.signature, fn, name=self.name)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "signature": self.description,
            "params": [str(t) for t in self.signature.params],
            "results": [str(t) for t in self.signature.results],
            "call_sites": [c.to_dict() for c in self.call_sites],
        }


class SignatureRegistry:
    """Maps structural signature keys to functions and their call sites.

    Both maps are only updated together, so they always share the same keys
    and every call-site list is non-empty.
    """

    def __init__(self, abbreviations: AbbreviationTable = DEFAULT_TABLE):
        self._abbreviations = abbreviations
        self._functions: dict[str, Function] = {}
        self._call_sites: dict[str, list[CallSite]] = {}
        self._keys_by_name: dict[str, str] = {}
        self.diagnostics: list[Diagnostic] = []

    def __len__(self) -> int:
        return len(self._functions)

    def __contains__(self, signature: Signature) -> bool:
        return signature.key in self._functions

    @property
    def functions(self) -> list[Function]:
        """Registered functions in first-registration order."""
        return list(self._functions.values())

    def function_for(self, signature: Signature) -> Function | None:
        return self._functions.get(signature.key)

    def call_sites(self, signature: Signature) -> tuple[CallSite, ...]:
        return tuple(self._call_sites.get(signature.key, ()))

    def register(self, call_site: CallSite) -> RegisterOutcome:
        """Register a call site, creating a function for a new signature.

        Args:
            call_site: The call site to register

        Returns:
            RegisterOutcome; REJECTED call sites get no adapter and carry the
            diagnostic explaining why
        """
        signature = call_site.signature
        key = signature.key

        existing = self._functions.get(key)
        if existing is not None:
            self._call_sites[key].append(call_site)
            logger.info(f"Add function {existing.name} for call {call_site.location}")
            return RegisterOutcome(RegisterStatus.DUPLICATE, existing)

        try:
            name = self._abbreviations.canonical_name(signature)
        except AbbreviationError as e:
            return self._reject(call_site, DiagnosticKind.ABBREVIATION, str(e))

        try:
            adapters.check_signature(signature)
        except UnsupportedTypeError as e:
            return self._reject(call_site, DiagnosticKind.UNSUPPORTED_TYPE, str(e))

        name = self._unique_name(name, call_site)
        function = Function(name=name, signature=signature)
        self._functions[key] = function
        self._call_sites[key] = [call_site]
        self._keys_by_name[name] = key
        logger.info(f"Found call to new function {name} [{signature}] at {call_site.location}")
        return RegisterOutcome(RegisterStatus.NEW, function)

    def emit(self) -> list[GeneratedAdapter]:
        """Return one adapter per registered function."""
        return [
            GeneratedAdapter(function=f, call_sites=tuple(self._call_sites[key]))
            for key, f in self._functions.items()
        ]

    def _unique_name(self, name: str, call_site: CallSite) -> str:
        if name not in self._keys_by_name:
            return name

        suffix = 2
        while f"{name}_{suffix}" in self._keys_by_name:
            suffix += 1
        unique = f"{name}_{suffix}"

        diagnostic = Diagnostic(
            Severity.WARNING,
            DiagnosticKind.NAME_COLLISION,
            call_site.location,
            f"adapter name {name} is already used by {self._keys_by_name[name]}; "
            f"{call_site.signature} is named {unique}",
        )
        self.diagnostics.append(diagnostic)
        logger.warning(str(diagnostic))
        return unique

    def _reject(self, call_site: CallSite, kind: DiagnosticKind, message: str) -> RegisterOutcome:
        diagnostic = Diagnostic(
            Severity.ERROR,
            kind,
            call_site.location,
            f"no adapter for '{call_site.target}': {message}",
        )
        self.diagnostics.append(diagnostic)
        logger.error(str(diagnostic))
        return RegisterOutcome(RegisterStatus.REJECTED, diagnostic=diagnostic)

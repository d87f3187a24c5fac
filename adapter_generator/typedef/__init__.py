"""Adapter generation for wrapped native functions."""

from adapter_generator.typedef.abbreviations import (
    DEFAULT_ABBREVIATIONS,
    AbbreviationError,
    AbbreviationTable,
    abbreviate,
    abbreviate_tuple,
    canonical_name,
)
from adapter_generator.typedef.adapters import bind
from adapter_generator.typedef.collector import (
    DEFAULT_MARKER_NAME,
    CallSite,
    UnresolvedPolicy,
    UnresolvedReferenceError,
    collect,
)
from adapter_generator.typedef.registry import (
    Function,
    GeneratedAdapter,
    RegisterStatus,
    SignatureRegistry,
)
from adapter_generator.typedef.renderer import render_adapter, render_module
from adapter_generator.typedef.rewriter import rewrite_source, rewrite_unit
from adapter_generator.typedef.signature import Signature, signature_from_declaration
from adapter_generator.typedef.types import (
    ERROR_TYPE,
    Type,
    TypeKind,
    UnsupportedTypeError,
    convert_annotation,
)

__all__ = [
    # Models
    "Type",
    "TypeKind",
    "ERROR_TYPE",
    "Signature",
    "Function",
    "CallSite",
    "GeneratedAdapter",
    # Type conversion
    "convert_annotation",
    "signature_from_declaration",
    "UnsupportedTypeError",
    # Abbreviation
    "DEFAULT_ABBREVIATIONS",
    "AbbreviationTable",
    "AbbreviationError",
    "abbreviate",
    "abbreviate_tuple",
    "canonical_name",
    # Collection
    "DEFAULT_MARKER_NAME",
    "UnresolvedPolicy",
    "UnresolvedReferenceError",
    "collect",
    # Registry
    "RegisterStatus",
    "SignatureRegistry",
    # Emission
    "bind",
    "render_adapter",
    "render_module",
    "rewrite_source",
    "rewrite_unit",
]

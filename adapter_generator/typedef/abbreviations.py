"""Abbreviate types and signatures into canonical adapter names."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from adapter_generator.models import GenerationError
from adapter_generator.typedef.signature import Signature
from adapter_generator.typedef.types import Type, TypeKind


NAME_PREFIX = "FuncA"
RESULTS_MARKER = "R"
SEQUENCE_SUFFIX = "s"

DEFAULT_ABBREVIATIONS: Mapping[str, str] = MappingProxyType(
    {
        # basic
        "bool": "B",
        "float": "F",
        "int64": "I64",
        "int": "I",
        "str": "S",
        # named
        "error": "E",
    }
)


class AbbreviationError(GenerationError):
    """A type has no entry in the abbreviation table."""

    def __init__(self, message: str, type_: Type | None = None):
        super().__init__(message)
        self.type = type_


@dataclass(frozen=True)
class AbbreviationTable:
    """Immutable mapping from canonical type names to name fragments."""

    codes: Mapping[str, str] = field(default_factory=lambda: DEFAULT_ABBREVIATIONS)

    def __post_init__(self):
        for type_name, code in self.codes.items():
            if not code or not code.isalnum() or not code.isascii():
                raise ValueError(
                    f"abbreviation for {type_name!r} must be ASCII letters or digits, got {code!r}"
                )
        object.__setattr__(self, "codes", MappingProxyType(dict(self.codes)))

    def with_overrides(self, overrides: Mapping[str, str]) -> "AbbreviationTable":
        """Return a new table with entries added or replaced."""
        return AbbreviationTable({**self.codes, **overrides})

    def abbreviate(self, type_: Type) -> str:
        """Abbreviate a single type.

        Raises:
            AbbreviationError: If the type (or a sequence's element) has no
                entry in the table
        """
        code = self.codes.get(type_.name)
        if type_.kind in (TypeKind.BASIC, TypeKind.NAMED):
            if code is None:
                raise AbbreviationError(f"can not abbreviate type {type_}", type_)
            return code
        if type_.kind is TypeKind.SEQUENCE:
            if code is None:
                raise AbbreviationError(f"can not abbreviate sequence type {type_}", type_)
            return code + SEQUENCE_SUFFIX
        raise AbbreviationError(f"can not abbreviate type {type_}", type_)

    def abbreviate_tuple(self, types: tuple[Type, ...]) -> str:
        return "".join(self.abbreviate(t) for t in types)

    def canonical_name(self, signature: Signature) -> str:
        """Build the adapter name ``FuncA<params>R<results>``.

        The name is for humans; it is not the deduplication key and distinct
        signatures may share it.
        """
        try:
            params = self.abbreviate_tuple(signature.params)
        except AbbreviationError as e:
            raise AbbreviationError(
                f"can not abbreviate params of {signature}: {e}", e.type
            ) from e
        try:
            results = self.abbreviate_tuple(signature.results)
        except AbbreviationError as e:
            raise AbbreviationError(
                f"can not abbreviate results of {signature}: {e}", e.type
            ) from e
        return f"{NAME_PREFIX}{params}{RESULTS_MARKER}{results}"


DEFAULT_TABLE = AbbreviationTable()


def abbreviate(type_: Type, table: AbbreviationTable = DEFAULT_TABLE) -> str:
    return table.abbreviate(type_)


def abbreviate_tuple(types: tuple[Type, ...], table: AbbreviationTable = DEFAULT_TABLE) -> str:
    return table.abbreviate_tuple(types)


def canonical_name(signature: Signature, table: AbbreviationTable = DEFAULT_TABLE) -> str:
    return table.canonical_name(signature)

"""Tests for building signatures from function declarations."""

import pytest

from adapter_generator.analysis import AnalysisUnit
from adapter_generator.typedef.signature import Signature, signature_from_declaration
from adapter_generator.typedef.types import ERROR_TYPE, Type, TypeKind, UnsupportedTypeError

INT = Type(TypeKind.BASIC, "int")
STR = Type(TypeKind.BASIC, "str")


def signature_of(source: str, reference: str = "f") -> Signature:
    unit = AnalysisUnit.from_sources({"mod.py": source})
    declaration = unit.resolve(unit.get("mod"), reference.split("."))
    return signature_from_declaration(declaration)


class TestSignatureFromDeclaration:
    def test_params_and_results_in_order(self):
        signature = signature_of(
            "def f(a: int, b: str) -> tuple[int, Exception | None]: ...\n"
        )
        assert signature.params == (INT, STR)
        assert signature.results == (INT, ERROR_TYPE)
        assert str(signature) == "(int, str) -> (int, error)"
        assert signature.returns_error

    def test_none_return_means_no_results(self):
        signature = signature_of("def f(a: int) -> None: ...\n")
        assert str(signature) == "(int) -> ()"
        assert not signature.returns_error

    def test_empty_tuple_return_means_no_results(self):
        assert signature_of("def f() -> tuple[()]: ...\n").results == ()

    def test_string_annotations(self):
        signature = signature_of("def f(n: 'int') -> 'list[int]': ...\n")
        assert str(signature) == "(int) -> ([]int)"

    def test_positional_only_params_are_kept(self):
        assert signature_of("def f(a: int, /, b: str) -> None: ...\n").params == (INT, STR)

    def test_classmethod_drops_cls(self):
        source = (
            "class Clock:\n"
            "    @classmethod\n"
            "    def create(cls, n: int) -> int: ...\n"
        )
        assert str(signature_of(source, "Clock.create")) == "(int) -> (int)"

    def test_same_shape_gives_same_key(self):
        first = signature_of("def f(x: int) -> int: ...\n")
        second = signature_of("def g(count: int) -> int: ...\n", "g")
        assert first == second
        assert first.key == second.key == "(int) -> (int)"

    @pytest.mark.parametrize(
        "source, reason",
        [
            ("def f(x) -> int: ...\n", "has no annotation"),
            ("def f(x: int): ...\n", "missing return annotation"),
            ("def f(*args: int) -> None: ...\n", "variadic"),
            ("def f(**kwargs: int) -> None: ...\n", "variadic"),
            ("def f(*, k: int) -> None: ...\n", "keyword-only"),
            ("async def f() -> int: ...\n", "async"),
            ("def f() -> tuple[int, ...]: ...\n", "variable-length"),
            ("def f(d: dict[str, int]) -> None: ...\n", "parameter 'd' of mod.f"),
            ("class C:\n    def f(self, x: int) -> int: ...\n", "parameter 'self'"),
            (
                "from typing import overload\n"
                "@overload\ndef f(a: int) -> int: ...\n"
                "@overload\ndef f(a: str) -> str: ...\n"
                "def f(a):\n    return a\n",
                "overloaded",
            ),
        ],
    )
    def test_rejects_unadaptable_functions(self, source, reason):
        reference = "C.f" if source.startswith("class") else "f"
        with pytest.raises(UnsupportedTypeError, match=reason):
            signature_of(source, reference)

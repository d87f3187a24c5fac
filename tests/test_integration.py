"""End-to-end tests: analyze, generate, rewrite and run the result."""

import runpy
from pathlib import Path

import pytest

from adapter_generator.cli import run_cli
from adapter_generator.objects import UNDEFINED, Array, Float, Int, UserFunction


@pytest.fixture
def fixtures_path():
    return Path(__file__).parent / "fixtures" / "rand_stdlib"


@pytest.fixture
def rand_module(fixtures_path, tmp_path, monkeypatch):
    """The fixture module rewritten to use generated adapters, executed."""
    out = tmp_path / "out"
    exit_code = run_cli(["rewrite", str(fixtures_path), "--output-dir", str(out)])
    assert exit_code == 0

    monkeypatch.syspath_prepend(str(fixtures_path))
    monkeypatch.syspath_prepend(str(out))
    return runpy.run_path(str(out / "rand_module.py"))


class TestRewrittenModule:
    def test_every_function_is_adapted(self, rand_module):
        table = rand_module["RAND_MODULE"]
        assert all(isinstance(fn, UserFunction) for fn in table.values())
        assert table["intn"].value.__name__ == "FuncAIRI"
        assert table["int"].value.__name__ == "FuncAIRI"

    def test_calls_native_functions(self, rand_module):
        table = rand_module["RAND_MODULE"]

        assert table["seed"].call(Int(42)) is UNDEFINED

        value = table["float"].call()
        assert isinstance(value, Float)
        assert 0.0 <= value.value < 1.0

        intn = table["intn"].call(Int(10))
        assert isinstance(intn, Int)
        assert 0 <= intn.value < 10

        assert isinstance(table["norm_float"].call(Float(0.0), Int(1)), Float)

    def test_sequence_results_become_arrays(self, rand_module):
        perm = rand_module["RAND_MODULE"]["perm"].call(Int(5))
        assert isinstance(perm, Array)
        assert sorted(v.value for v in perm.value) == [0, 1, 2, 3, 4]

    def test_error_result_without_error(self, rand_module):
        assert isinstance(rand_module["RAND_MODULE"]["entropy"].call(), Int)

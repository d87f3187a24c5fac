"""Tests for CLI interface."""

import json
from pathlib import Path

import pytest

from adapter_generator.cli import parse_args, run_cli


@pytest.fixture
def fixtures_path():
    return Path(__file__).parent / "fixtures" / "rand_stdlib"


@pytest.fixture
def unresolved_path(tmp_path):
    source = tmp_path / "src"
    source.mkdir()
    (source / "app.py").write_text(
        "from adapter_generator.objects import to_callable_func\n"
        "A = to_callable_func(missing)\n"
        "B = to_callable_func(present)\n"
        "\n"
        "def present(x: int) -> str:\n"
        "    return str(x)\n"
    )
    return source


class TestCLI:
    def given_args(self, *args):
        self.args = [str(a) for a in args]

    def when_cli_is_run(self, capsys):
        self.exit_code = run_cli(self.args)
        self.captured = capsys.readouterr()

    def then_exit_code_is(self, code):
        assert self.exit_code == code

    def test_generate_writes_module_to_stdout(self, fixtures_path, capsys):
        self.given_args("generate", fixtures_path)
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(0)
        assert "def FuncAIRI(fn):" in self.captured.out
        assert self.captured.out.startswith('"""Generated adapters. Do not edit.')

    def test_bare_path_means_generate(self, fixtures_path, capsys):
        self.given_args(fixtures_path)
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(0)
        assert "def FuncARIE(fn):" in self.captured.out

    def test_generate_to_file(self, fixtures_path, tmp_path, capsys):
        output = tmp_path / "out" / "adapters_gen.py"
        self.given_args("generate", fixtures_path, "-o", output)
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(0)
        assert "def FuncAFFRF(fn):" in output.read_text()
        assert "Wrote 7 adapters" in self.captured.err

    def test_report_outputs_json(self, fixtures_path, capsys):
        self.given_args("report", fixtures_path)
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(0)

        output = json.loads(self.captured.out)
        assert output["aborted"] is False
        assert len(output["adapters"]) == 7
        intn = next(a for a in output["adapters"] if a["name"] == "FuncAIRI")
        assert [c["target"] for c in intn["call_sites"]] == [
            "random.randrange",
            "random.getrandbits",
        ]

    def test_rewrite_writes_sources_and_adapters(self, fixtures_path, tmp_path, capsys):
        out = tmp_path / "out"
        self.given_args("rewrite", fixtures_path, "-d", out, "--adapters-module", "gen.rand")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(0)

        rewritten = (out / "rand_module.py").read_text()
        assert 'UserFunction("float", FuncARF(random.random))' in rewritten
        assert "from gen.rand import " in rewritten
        assert "def FuncARF(fn):" in (out / "gen" / "rand.py").read_text()
        assert not (out / "helpers.py").exists()

    def test_unresolved_reference_fails(self, unresolved_path, capsys):
        self.given_args("generate", unresolved_path)
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(1)
        assert self.captured.out == ""
        assert "can not resolve argument 'missing'" in self.captured.err
        assert "generation aborted" in self.captured.err

    def test_skipping_unresolved_still_generates(self, unresolved_path, capsys):
        self.given_args("generate", unresolved_path, "--on-unresolved", "skip")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(1)
        assert "def FuncAIRS(fn):" in self.captured.out

    def test_custom_abbreviation(self, unresolved_path, capsys):
        self.given_args(
            "report", unresolved_path, "--on-unresolved", "skip", "--abbrev", "str=T"
        )
        self.when_cli_is_run(capsys)
        names = [a["name"] for a in json.loads(self.captured.out)["adapters"]]
        assert names == ["FuncAIRT"]

    def test_invalid_abbreviation_is_a_usage_error(self, fixtures_path, capsys):
        self.given_args("generate", fixtures_path, "--abbrev", "int")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(2)
        assert "TYPE=CODE" in self.captured.err

    def test_no_args_shows_help(self, capsys):
        self.given_args()
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(1)
        assert "usage" in self.captured.err.lower()

    def test_missing_path_fails(self, tmp_path, capsys):
        self.given_args("generate", tmp_path / "missing")
        self.when_cli_is_run(capsys)
        self.then_exit_code_is(1)
        assert "does not exist" in self.captured.err


class TestParseArgs:
    def test_defaults(self):
        parsed = parse_args(["generate", "src"])
        assert parsed.paths == ["src"]
        assert parsed.marker == "to_callable_func"
        assert parsed.on_unresolved == "abort"
        assert parsed.output == "-"

    def test_rewrite_requires_output_dir(self):
        with pytest.raises(SystemExit):
            parse_args(["rewrite", "src"])

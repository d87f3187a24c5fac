"""Tests for loading sources and resolving references."""

from pathlib import Path, PurePosixPath

import pytest

from adapter_generator.analysis import (
    AnalysisLoadError,
    AnalysisUnit,
    ResolutionError,
    module_name_for,
)


@pytest.fixture
def fixtures_path():
    return Path(__file__).parent / "fixtures" / "rand_stdlib"


class TestModuleNameFor:
    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("mod.py", ("mod", False)),
            ("random.pyi", ("random", False)),
            ("pkg/sub/mod.py", ("pkg.sub.mod", False)),
            ("pkg/__init__.py", ("pkg", True)),
        ],
    )
    def test_maps_relative_paths_to_module_names(self, filename, expected):
        assert module_name_for(PurePosixPath(filename)) == expected


class TestResolve:
    """Tests for AnalysisUnit.resolve."""

    def given_sources(self, sources: dict[str, str]):
        self.unit = AnalysisUnit.from_sources(sources)

    def when_resolved(self, module: str, reference: str):
        self.declaration = self.unit.resolve(self.unit.get(module), reference.split("."))

    def then_resolves_to(self, qualified_name: str):
        assert self.declaration.qualified_name == qualified_name

    def test_resolves_module_level_function(self):
        self.given_sources({"app.py": "def double(x: int) -> int:\n    return x * 2\n"})
        self.when_resolved("app", "double")
        self.then_resolves_to("app.double")

    def test_resolves_through_module_import(self):
        self.given_sources(
            {
                "app.py": "import random\n",
                "random.pyi": "def random() -> float: ...\n",
            }
        )
        self.when_resolved("app", "random.random")
        self.then_resolves_to("random.random")

    def test_resolves_through_aliased_from_import(self):
        self.given_sources(
            {
                "app.py": "from lib import helper as h\n",
                "lib.py": "def helper() -> None:\n    pass\n",
            }
        )
        self.when_resolved("app", "h")
        self.then_resolves_to("lib.helper")

    def test_resolves_relative_import_inside_package(self):
        self.given_sources(
            {
                "pkg/__init__.py": "",
                "pkg/app.py": "from . import util\n",
                "pkg/util.py": "def tick() -> int:\n    return 1\n",
            }
        )
        self.when_resolved("pkg.app", "util.tick")
        self.then_resolves_to("pkg.util.tick")

    def test_resolves_re_exported_name(self):
        self.given_sources(
            {
                "app.py": "from pkg import tick\n",
                "pkg/__init__.py": "from .util import tick\n",
                "pkg/util.py": "def tick() -> int:\n    return 1\n",
            }
        )
        self.when_resolved("app", "tick")
        self.then_resolves_to("pkg.util.tick")

    def test_resolves_class_methods(self):
        self.given_sources(
            {
                "app.py": (
                    "class Clock:\n"
                    "    @staticmethod\n"
                    "    def now() -> float:\n"
                    "        return 0.0\n"
                    "\n"
                    "    @classmethod\n"
                    "    def create(cls, tz: str) -> int:\n"
                    "        return 0\n"
                ),
            }
        )
        self.when_resolved("app", "Clock.now")
        self.then_resolves_to("app.Clock.now")
        assert not self.declaration.skip_first_param

        self.when_resolved("app", "Clock.create")
        assert self.declaration.skip_first_param

    def test_finds_definitions_inside_conditional_blocks(self):
        self.given_sources(
            {
                "app.py": (
                    "import sys\n"
                    "if sys.platform == 'win32':\n"
                    "    def now() -> float:\n"
                    "        return 1.0\n"
                    "else:\n"
                    "    def now() -> float:\n"
                    "        return 2.0\n"
                ),
            }
        )
        self.when_resolved("app", "now")
        self.then_resolves_to("app.now")

    def test_stub_takes_precedence_over_implementation(self):
        self.given_sources(
            {
                "lib.pyi": "def tick() -> int: ...\n",
                "lib.py": "def tick(x):\n    return x\n",
            }
        )
        self.when_resolved("lib", "tick")
        assert self.unit.get("lib").filename == "lib.pyi"

    def test_undefined_name_raises(self):
        self.given_sources({"app.py": "x = 1\n"})
        with pytest.raises(ResolutionError, match="not defined"):
            self.when_resolved("app", "missing")

    def test_variable_is_not_a_function(self):
        self.given_sources({"app.py": "handler = print\n"})
        with pytest.raises(ResolutionError, match="not a function"):
            self.when_resolved("app", "handler")

    def test_module_outside_the_unit_is_unresolved(self):
        self.given_sources({"app.py": "import os\n"})
        with pytest.raises(ResolutionError, match="os.getpid"):
            self.when_resolved("app", "os.getpid")


class TestLoading:
    def test_modules_are_sorted_by_name(self):
        unit = AnalysisUnit.from_sources({"b.py": "", "a.py": "", "c/d.py": ""})
        assert [m.name for m in unit.modules] == ["a", "b", "c.d"]

    def test_syntax_error_reports_location(self):
        with pytest.raises(AnalysisLoadError) as exc_info:
            AnalysisUnit.from_sources({"broken.py": "def f(:\n"})
        assert exc_info.value.location.filename == "broken.py"
        assert exc_info.value.location.line == 1

    def test_loads_directory_recursively(self, fixtures_path):
        unit = AnalysisUnit.from_paths([fixtures_path])
        assert [m.name for m in unit.modules] == ["helpers", "rand_module", "random"]
        assert unit.get("random").filename == "random.pyi"

    def test_loads_single_file_as_top_level_module(self, fixtures_path):
        unit = AnalysisUnit.from_paths([fixtures_path / "helpers.py"])
        assert [m.name for m in unit.modules] == ["helpers"]

    def test_missing_path_raises(self, tmp_path):
        with pytest.raises(AnalysisLoadError, match="does not exist"):
            AnalysisUnit.from_paths([tmp_path / "nope"])

    def test_skips_cache_and_hidden_directories(self, tmp_path):
        (tmp_path / "__pycache__").mkdir()
        (tmp_path / "__pycache__" / "stale.py").write_text("x = 1\n")
        (tmp_path / ".venv").mkdir()
        (tmp_path / ".venv" / "lib.py").write_text("x = 1\n")
        (tmp_path / "app.py").write_text("x = 1\n")

        unit = AnalysisUnit.from_paths([tmp_path])

        assert [m.name for m in unit.modules] == ["app"]

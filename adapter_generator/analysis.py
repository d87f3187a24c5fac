"""Load Python sources and stubs into an analysis unit.

An analysis unit is a set of modules parsed with libcst. References are
resolved against each module's top-level bindings (functions, classes,
imports) and followed across modules of the same unit, so a stub such as
``random.pyi`` makes ``random.random`` resolvable.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path, PurePosixPath

import libcst as cst
from libcst.metadata import CodeRange, MetadataWrapper, PositionProvider

from adapter_generator.models import GenerationError, SourcePosition

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".py", ".pyi")
SKIPPED_DIRECTORIES = {"__pycache__", "node_modules"}
OVERLOAD_DECORATORS = {"overload", "typing.overload", "typing_extensions.overload"}
MAX_IMPORT_DEPTH = 32

_EMPTY_MODULE = cst.Module(body=[])


class AnalysisLoadError(GenerationError):
    """A source file could not be read or parsed."""

    def __init__(self, message: str, location: SourcePosition | None = None):
        super().__init__(message)
        self.location = location


class ResolutionError(GenerationError):
    """A reference could not be resolved to a function declaration."""


def dotted_name(expr: cst.CSTNode | None) -> str | None:
    """Return ``a.b.c`` for a Name/Attribute chain, None for anything else."""
    parts = dotted_parts(expr)
    return ".".join(parts) if parts is not None else None


def dotted_parts(expr: cst.CSTNode | None) -> list[str] | None:
    if isinstance(expr, cst.Name):
        return [expr.value]
    if isinstance(expr, cst.Attribute):
        head = dotted_parts(expr.value)
        if head is None:
            return None
        return [*head, expr.attr.value]
    return None


def node_source(node: cst.CSTNode) -> str:
    """Render a node back to source text."""
    return _EMPTY_MODULE.code_for_node(node)


@dataclass(frozen=True)
class FunctionDeclaration:
    """A function a reference resolved to."""

    qualified_name: str
    node: cst.FunctionDef
    location: SourcePosition
    skip_first_param: bool = False
    overloaded: bool = False


@dataclass(frozen=True)
class ClassDeclaration:
    qualified_name: str
    methods: Mapping[str, FunctionDeclaration] = field(default_factory=dict)


@dataclass(frozen=True)
class ModuleReference:
    name: str


@dataclass(frozen=True)
class ImportedName:
    """``from module import name``, resolved lazily."""

    module: str
    name: str


@dataclass(frozen=True)
class OtherBinding:
    """A name bound by an assignment or anything else that is not callable."""

    description: str


Binding = FunctionDeclaration | ClassDeclaration | ModuleReference | ImportedName | OtherBinding


@dataclass
class SourceModule:
    """One parsed module of an analysis unit."""

    name: str
    filename: str
    wrapper: MetadataWrapper
    is_package: bool = False
    bindings: dict[str, Binding] = field(default_factory=dict)

    @property
    def module(self) -> cst.Module:
        return self.wrapper.module

    def position(self, node: cst.CSTNode) -> SourcePosition:
        positions: Mapping[cst.CSTNode, CodeRange] = self.wrapper.resolve(PositionProvider)
        rng = positions[node]
        return SourcePosition(self.filename, rng.start.line, rng.start.column + 1)


def module_name_for(relative: PurePosixPath) -> tuple[str, bool]:
    """Map ``pkg/mod.py`` to ``("pkg.mod", False)`` and ``pkg/__init__.py`` to ``("pkg", True)``."""
    parts = list(relative.with_suffix("").parts)
    if parts and parts[-1] == "__init__":
        return ".".join(parts[:-1]), True
    return ".".join(parts), False


def parse_source(filename: str, source: str) -> SourceModule:
    """Parse one source file into a SourceModule with its bindings.

    Raises:
        AnalysisLoadError: If the source is not valid Python
    """
    name, is_package = module_name_for(PurePosixPath(filename))
    try:
        parsed = cst.parse_module(source)
    except cst.ParserSyntaxError as e:
        location = SourcePosition(filename, e.raw_line, e.raw_column + 1)
        raise AnalysisLoadError(f"syntax error: {e.message}", location) from e

    source_module = SourceModule(
        name=name,
        filename=filename,
        wrapper=MetadataWrapper(parsed),
        is_package=is_package,
    )
    source_module.bindings = _collect_bindings(source_module)
    logger.debug(f"Parsed module {name} with {len(source_module.bindings)} bindings")
    return source_module


class AnalysisUnit:
    """A set of modules analyzed together in one generation run."""

    def __init__(self, modules: Iterable[SourceModule]):
        self._modules: dict[str, SourceModule] = {}
        for module in modules:
            previous = self._modules.get(module.name)
            if previous is not None and previous.filename.endswith(".pyi"):
                # stubs take precedence over implementations
                continue
            self._modules[module.name] = module

    @classmethod
    def from_sources(cls, sources: Mapping[str, str]) -> "AnalysisUnit":
        """Build a unit from ``{relative filename: source text}``.

        Raises:
            AnalysisLoadError: If any source is not valid Python
        """
        return cls(parse_source(filename, text) for filename, text in sources.items())

    @classmethod
    def from_paths(cls, paths: Iterable[Path]) -> "AnalysisUnit":
        """Load files and directories (searched recursively for .py/.pyi).

        Module names are relative to each directory argument; a file
        argument becomes a top-level module.

        Raises:
            AnalysisLoadError: If a path is missing or a file can not be
                read or parsed
        """
        sources: dict[str, str] = {}
        for path in paths:
            for filename, file_path in _discover(Path(path)):
                try:
                    sources[filename] = file_path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    raise AnalysisLoadError(f"can not read {file_path}: {e}") from e
        logger.info(f"Loaded {len(sources)} source files")
        return cls.from_sources(sources)

    @property
    def modules(self) -> list[SourceModule]:
        """Modules in deterministic (sorted by name) order."""
        return [self._modules[name] for name in sorted(self._modules)]

    def get(self, name: str) -> SourceModule | None:
        return self._modules.get(name)

    def resolve(self, module: SourceModule, parts: Sequence[str]) -> FunctionDeclaration:
        """Resolve a dotted reference used in module to a function declaration.

        Raises:
            ResolutionError: If the reference is undefined or is not a function
        """
        reference = ".".join(parts)
        target = self._lookup(module.name, parts[0], 0)
        if target is None:
            raise ResolutionError(f"name '{parts[0]}' is not defined in module {module.name}")

        for index, part in enumerate(parts[1:], start=2):
            resolved = self._member(target, part)
            if resolved is None:
                raise ResolutionError(
                    f"can not resolve '{'.'.join(parts[:index])}' ({_describe(target)} has no member '{part}')"
                )
            target = resolved

        if not isinstance(target, FunctionDeclaration):
            raise ResolutionError(f"'{reference}' is a {_describe(target)}, not a function")
        return target

    def _lookup(self, module_name: str, name: str, depth: int) -> Binding | None:
        source = self._modules.get(module_name)
        if source is None:
            return None
        return self._follow(source.bindings.get(name), depth)

    def _follow(self, binding: Binding | None, depth: int) -> Binding | None:
        if not isinstance(binding, ImportedName):
            return binding
        submodule = f"{binding.module}.{binding.name}"
        if self._has_module(submodule):
            return ModuleReference(submodule)
        if depth >= MAX_IMPORT_DEPTH:
            logger.warning(f"Import cycle while resolving {submodule}")
            return None
        return self._lookup(binding.module, binding.name, depth + 1)

    def _member(self, target: Binding, name: str) -> Binding | None:
        if isinstance(target, ModuleReference):
            submodule = f"{target.name}.{name}"
            if self._has_module(submodule):
                return ModuleReference(submodule)
            return self._lookup(target.name, name, 0)
        if isinstance(target, ClassDeclaration):
            return target.methods.get(name)
        return None

    def _has_module(self, name: str) -> bool:
        if name in self._modules:
            return True
        prefix = name + "."
        return any(m.startswith(prefix) for m in self._modules)


def _describe(binding: Binding) -> str:
    if isinstance(binding, ModuleReference):
        return f"module {binding.name}"
    if isinstance(binding, ClassDeclaration):
        return f"class {binding.qualified_name}"
    if isinstance(binding, FunctionDeclaration):
        return f"function {binding.qualified_name}"
    if isinstance(binding, OtherBinding):
        return binding.description
    return type(binding).__name__


def _discover(path: Path) -> Iterator[tuple[str, Path]]:
    if path.is_file():
        yield path.name, path
        return
    if not path.is_dir():
        raise AnalysisLoadError(f"path does not exist: {path}")
    for file_path in sorted(path.rglob("*")):
        if file_path.suffix not in SOURCE_SUFFIXES or not file_path.is_file():
            continue
        relative = file_path.relative_to(path)
        if any(p in SKIPPED_DIRECTORIES or p.startswith(".") for p in relative.parts[:-1]):
            continue
        yield relative.as_posix(), file_path


# -----------------------------------------------------------------------------
# Binding collection
# -----------------------------------------------------------------------------


def _collect_bindings(source: SourceModule) -> dict[str, Binding]:
    bindings: dict[str, Binding] = {}
    overloads: set[str] = set()
    for stmt in _iter_statements(source.module.body):
        if isinstance(stmt, cst.FunctionDef):
            if _is_overload(stmt):
                overloads.add(stmt.name.value)
            bindings[stmt.name.value] = FunctionDeclaration(
                qualified_name=f"{source.name}.{stmt.name.value}",
                node=stmt,
                location=source.position(stmt),
            )
        elif isinstance(stmt, cst.ClassDef):
            bindings[stmt.name.value] = _class_declaration(source, stmt)
        elif isinstance(stmt, cst.Import):
            for alias in stmt.names:
                target = dotted_name(alias.name)
                if alias.asname is not None:
                    bindings[dotted_name(alias.asname.name)] = ModuleReference(target)
                else:
                    head = target.split(".")[0]
                    bindings[head] = ModuleReference(head)
        elif isinstance(stmt, cst.ImportFrom):
            _bind_import_from(source, stmt, bindings)
        elif isinstance(stmt, cst.Assign):
            for target in stmt.targets:
                _bind_other(target.target, bindings)
        elif isinstance(stmt, cst.AnnAssign):
            _bind_other(stmt.target, bindings)
    return _mark_overloaded(bindings, overloads)


def _iter_statements(body: Sequence[cst.CSTNode]) -> Iterator[cst.CSTNode]:
    """Yield top-level statements, descending into if/try/with blocks."""
    for stmt in body:
        if isinstance(stmt, cst.SimpleStatementLine):
            yield from stmt.body
        elif isinstance(stmt, cst.If):
            yield from _iter_statements(stmt.body.body)
            orelse = stmt.orelse
            if isinstance(orelse, cst.If):
                yield from _iter_statements([orelse])
            elif orelse is not None:
                yield from _iter_statements(orelse.body.body)
        elif isinstance(stmt, (cst.Try, cst.TryStar)):
            yield from _iter_statements(stmt.body.body)
            for handler in stmt.handlers:
                yield from _iter_statements(handler.body.body)
            if stmt.orelse is not None:
                yield from _iter_statements(stmt.orelse.body.body)
            if stmt.finalbody is not None:
                yield from _iter_statements(stmt.finalbody.body.body)
        elif isinstance(stmt, cst.With):
            yield from _iter_statements(stmt.body.body)
        else:
            yield stmt


def _class_declaration(source: SourceModule, node: cst.ClassDef) -> ClassDeclaration:
    qualified_name = f"{source.name}.{node.name.value}"
    methods = {}
    overloads: set[str] = set()
    for stmt in _iter_statements(node.body.body):
        if not isinstance(stmt, cst.FunctionDef):
            continue
        if _is_overload(stmt):
            overloads.add(stmt.name.value)
        decorators = {dotted_name(d.decorator) for d in stmt.decorators}
        methods[stmt.name.value] = FunctionDeclaration(
            qualified_name=f"{qualified_name}.{stmt.name.value}",
            node=stmt,
            location=source.position(stmt),
            skip_first_param="classmethod" in decorators,
        )
    methods = _mark_overloaded(methods, overloads)
    return ClassDeclaration(qualified_name=qualified_name, methods=methods)


def _is_overload(node: cst.FunctionDef) -> bool:
    return any(dotted_name(d.decorator) in OVERLOAD_DECORATORS for d in node.decorators)


def _mark_overloaded(bindings: dict[str, Binding], overloads: set[str]) -> dict[str, Binding]:
    """Flag names defined by an overload set; the last definition stands for all."""
    for name in overloads:
        binding = bindings.get(name)
        if isinstance(binding, FunctionDeclaration):
            bindings[name] = replace(binding, overloaded=True)
    return bindings


def _bind_import_from(source: SourceModule, stmt: cst.ImportFrom, bindings: dict[str, Binding]) -> None:
    base = dotted_name(stmt.module) if stmt.module is not None else ""
    if stmt.relative:
        package_parts = source.name.split(".") if source.name else []
        if not source.is_package:
            package_parts = package_parts[:-1]
        levels_up = len(stmt.relative) - 1
        if levels_up:
            package_parts = package_parts[:-levels_up]
        base = ".".join([*package_parts, base] if base else package_parts)

    if isinstance(stmt.names, cst.ImportStar):
        logger.debug(f"Ignoring star import from {base} in {source.filename}")
        return

    for alias in stmt.names:
        imported = dotted_name(alias.name)
        bound = dotted_name(alias.asname.name) if alias.asname is not None else imported
        bindings[bound] = ImportedName(module=base, name=imported)


def _bind_other(target: cst.BaseExpression, bindings: dict[str, Binding]) -> None:
    if isinstance(target, cst.Name):
        bindings[target.value] = OtherBinding("variable")
    elif isinstance(target, (cst.Tuple, cst.List)):
        for element in target.elements:
            _bind_other(element.value, bindings)

"""Command-line interface for adapter-generator."""

import argparse
import logging
import sys
from pathlib import Path

from adapter_generator.analysis import AnalysisLoadError, AnalysisUnit
from adapter_generator.config import GeneratorConfig, parse_abbreviation_overrides
from adapter_generator.generator import generate, load_failure
from adapter_generator.models import GenerationResult
from adapter_generator.typedef.abbreviations import AbbreviationTable
from adapter_generator.typedef.collector import DEFAULT_MARKER_NAME, UnresolvedPolicy
from adapter_generator.typedef.renderer import render_module
from adapter_generator.typedef.rewriter import rewrite_unit

logger = logging.getLogger(__name__)

COMMANDS = ("generate", "report", "rewrite")


def setup_logging(verbose: bool = False):
    """Configure logging to stderr."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "paths",
        nargs="+",
        help="Python files or directories to analyze (.py and .pyi)",
    )
    parser.add_argument(
        "--marker",
        default=DEFAULT_MARKER_NAME,
        help=f"Name of the marker function (default: {DEFAULT_MARKER_NAME})",
    )
    parser.add_argument(
        "--on-unresolved",
        choices=[p.value for p in UnresolvedPolicy],
        default=UnresolvedPolicy.ABORT.value,
        help="Abort the run or skip the call site when a reference can not be resolved (default: abort)",
    )
    parser.add_argument(
        "--abbrev",
        action="append",
        default=[],
        metavar="TYPE=CODE",
        help="Add or override a type abbreviation (repeatable)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log progress to stderr",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="adapter-generator",
        description="Generate scripting-engine adapters for wrapped native functions",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # generate subcommand
    generate_parser = subparsers.add_parser(
        "generate",
        help="Write the adapter module (default)",
    )
    _add_common_arguments(generate_parser)
    generate_parser.add_argument(
        "--output",
        "-o",
        default="-",
        help="Output path for the adapter module (default: stdout)",
    )

    # report subcommand
    report_parser = subparsers.add_parser(
        "report",
        help="Print adapters, call sites and diagnostics as JSON",
    )
    _add_common_arguments(report_parser)

    # rewrite subcommand
    rewrite_parser = subparsers.add_parser(
        "rewrite",
        help="Write sources with marker calls replaced by adapter calls",
    )
    _add_common_arguments(rewrite_parser)
    rewrite_parser.add_argument(
        "--output-dir",
        "-d",
        required=True,
        help="Directory for the rewritten sources and the adapter module",
    )
    rewrite_parser.add_argument(
        "--adapters-module",
        default=None,
        help="Module name the rewritten sources import adapters from (default: adapters_gen)",
    )

    return parser


def parse_args(args: list[str]) -> argparse.Namespace:
    """Parse command-line arguments; a bare path means ``generate``."""
    parser = create_parser()

    if args and not args[0].startswith("-") and args[0] not in COMMANDS:
        args = ["generate"] + args

    return parser.parse_args(args)


def build_config(parsed: argparse.Namespace) -> GeneratorConfig:
    """Build the generator configuration from parsed arguments.

    Raises:
        ValueError: If an abbreviation override or name is invalid
    """
    overrides = parse_abbreviation_overrides(parsed.abbrev)
    options = {
        "marker_name": parsed.marker,
        "abbreviations": AbbreviationTable().with_overrides(overrides),
        "unresolved_policy": UnresolvedPolicy(parsed.on_unresolved),
    }
    if getattr(parsed, "adapters_module", None):
        options["adapters_module"] = parsed.adapters_module
    return GeneratorConfig(**options)


def _load_and_generate(
    paths: list[str], config: GeneratorConfig
) -> tuple[AnalysisUnit | None, GenerationResult]:
    try:
        unit = AnalysisUnit.from_paths(Path(p) for p in paths)
    except AnalysisLoadError as e:
        return None, load_failure(e)
    return unit, generate(unit, config)


def _print_diagnostics(result: GenerationResult) -> None:
    for diagnostic in result.diagnostics:
        print(diagnostic, file=sys.stderr)


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


def run_generate(paths: list[str], config: GeneratorConfig, output: str) -> int:
    """Run the generate command."""
    _, result = _load_and_generate(paths, config)
    _print_diagnostics(result)
    if result.aborted:
        print("Error: generation aborted", file=sys.stderr)
        return 1

    source = render_module(result.adapters, origin=", ".join(paths))
    if output == "-":
        sys.stdout.write(source)
    else:
        _write(Path(output), source)
        print(f"Wrote {len(result.adapters)} adapters to: {output}", file=sys.stderr)
    return 1 if result.has_errors else 0


def run_report(paths: list[str], config: GeneratorConfig) -> int:
    """Run the report command."""
    _, result = _load_and_generate(paths, config)
    print(result.to_json())
    return 1 if result.has_errors else 0


def run_rewrite(paths: list[str], config: GeneratorConfig, output_dir: str) -> int:
    """Run the rewrite command.

    Writes every rewritten module plus the adapter module into output_dir.
    """
    unit, result = _load_and_generate(paths, config)
    _print_diagnostics(result)
    if unit is None or result.aborted:
        print("Error: generation aborted", file=sys.stderr)
        return 1

    out = Path(output_dir)
    rewritten = rewrite_unit(unit, result.adapters, import_from=config.adapters_module)
    for filename, source in rewritten.items():
        _write(out / filename, source)
        logger.info(f"Rewritten source written to {out / filename}")

    module_path = out / (config.adapters_module.replace(".", "/") + ".py")
    _write(module_path, render_module(result.adapters, origin=", ".join(paths)))
    print(
        f"Rewrote {len(rewritten)} files and wrote {len(result.adapters)} adapters to: {out}",
        file=sys.stderr,
    )
    return 1 if result.has_errors else 0


def run_cli(args: list[str]) -> int:
    """Run the CLI with the given arguments.

    Args:
        args: Command-line arguments (without program name)

    Returns:
        Exit code (0 for success, non-zero when errors were reported)
    """
    try:
        parsed = parse_args(args)
    except SystemExit as e:
        return e.code if e.code else 1

    if parsed.command is None:
        # No command and no args - show help
        create_parser().print_help(sys.stderr)
        return 1

    setup_logging(parsed.verbose)

    try:
        config = build_config(parsed)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if parsed.command == "generate":
        return run_generate(parsed.paths, config, parsed.output)
    elif parsed.command == "report":
        return run_report(parsed.paths, config)
    elif parsed.command == "rewrite":
        return run_rewrite(parsed.paths, config, parsed.output_dir)

    return 1


def main():
    """Entry point for the CLI."""
    exit_code = run_cli(sys.argv[1:])
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

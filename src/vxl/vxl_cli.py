"""
VXL CLI Entrypoint.

This module provides the command-line interface for parsing VXL source code
and printing the resulting tree as JSON.

Features:
    - Read source from `.vxl` files, inline strings or standard input.
    - Parse into the positioned AST and render it as JSON.
    - Output to console or file.
    - Optionally report parse and serialization timings.
    - Debug logging of the parse, with optional per-rule tracing.

Example usage:
    vxl config.vxl
    vxl -s "fun.sub(123, foo=321)"
    cat config.vxl | vxl --compact
    vxl config.vxl -o tree.json -p

Functions:
    run_vxl(source: str, is_string: bool = False, out: str | None = None,
            compact: bool = False, profile: bool = False, trace: bool = False) -> None:
        Executes the VXL pipeline (read → parse → serialize → output).

    main(argv: list[str] | None = None) -> int:
        Parses CLI arguments, runs the pipeline and returns the exit status.
"""

import argparse
import logging
import sys
import time
from importlib.metadata import PackageNotFoundError, version

from vxl.vxl_ast import tree_to_json
from vxl.vxl_errors import ParseError
from vxl.vxl_parser import Parser

logger = logging.getLogger(__name__)


def vxl_version() -> str:
    try:
        return version("vxl")
    except PackageNotFoundError:
        return "unknown"


def read_source(source: str | None, is_string: bool = False) -> str:
    """
    Resolve the SOURCE argument to program text.

    Args:
        source (str | None): Path to a `.vxl` file, raw code (with `is_string`),
            or None / "-" for standard input.
        is_string (bool): Treat `source` as the program itself.

    Raises:
        ValueError: If a path is given that does not end with '.vxl'.
    """
    if source is None or (source == "-" and not is_string):
        return sys.stdin.read()
    if is_string:
        return source
    if not source.endswith(".vxl"):
        raise ValueError("Only .vxl files are supported.")
    with open(source, encoding="utf-8") as f:
        return f.read()


def run_vxl(
    source: str | None,
    is_string: bool = False,
    out: str | None = None,
    compact: bool = False,
    profile: bool = False,
    trace: bool = False,
) -> None:
    """
    Run the VXL toolchain: read, parse, serialize and write the tree.

    Args:
        source (str | None): The VXL source code, a path to a `.vxl` file, or
            None for standard input.
        is_string (bool): If True, treats `source` as raw code. Defaults to False.
        out (str | None): Optional path to write the JSON to. If None, prints to stdout.
        compact (bool): Emit single-line JSON instead of indented output.
        profile (bool): Print parse and serialization durations after the tree.
        trace (bool): Log every grammar rule attempt at DEBUG level.

    Raises:
        ParseError: If the source is not a valid VXL program.
        ValueError: If a file path without the `.vxl` suffix is given.
    """
    text = read_source(source, is_string)

    started = time.perf_counter()
    tree = Parser(text, trace=trace).parse()
    parsed = time.perf_counter()
    rendered = tree_to_json(tree, indent=None if compact else 2)
    serialized = time.perf_counter()

    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(rendered + "\n")
        logger.debug("wrote %d nodes to %s", len(tree), out)
    else:
        print(rendered)

    if profile:
        print(f"parse: {(parsed - started) * 1000:.3f} ms", file=sys.stderr)
        print(f"serialize: {(serialized - parsed) * 1000:.3f} ms", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the VXL CLI.

    Supported flags:
        - `-s`, `--string`: Interpret source as a raw string instead of a file path.
        - `-o`, `--out`: Write the JSON tree to a file.
        - `-p`, `--profile`: Report parse and serialization timings on stderr.
        - `-x`, `--vxl-version`: Print the package version and exit.
        - `--compact`: Single-line JSON.
        - `--verbose`: Debug logging.
        - `--trace`: Debug logging with one record per grammar rule attempt.

    Returns:
        int: 0 on success, 1 when the source fails to parse or cannot be read.
    """
    parser = argparse.ArgumentParser(prog="vxl", description="Parse VXL source to JSON")
    parser.add_argument(
        "source", nargs="?", help="Filename, raw source (with -s), or - for stdin"
    )
    parser.add_argument(
        "-s", "--string", action="store_true", help="Interpret source as literal string"
    )
    parser.add_argument("-o", "--out", metavar="OUTFILE", help="Output to file")
    parser.add_argument(
        "-p", "--profile", action="store_true", help="Print parse timings to stderr"
    )
    parser.add_argument(
        "-x",
        "--vxl-version",
        action="version",
        version=f"%(prog)s {vxl_version()}",
        help="Print version and exit",
    )
    parser.add_argument("--compact", action="store_true", help="Single-line JSON output")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--trace", action="store_true", help="Log every grammar rule (implies --verbose)"
    )

    args = parser.parse_args(argv)

    if args.verbose or args.trace:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )

    try:
        run_vxl(
            source=args.source,
            is_string=args.string,
            out=args.out,
            compact=args.compact,
            profile=args.profile,
            trace=args.trace,
        )
    except ParseError as exc:
        print(f"Parse error: {exc}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__" and not any("pytest" in arg for arg in sys.argv):
    sys.exit(main())

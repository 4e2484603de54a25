"""
SKIFF CLI Entrypoint.

This module provides the command-line interface for checking SKIFF source code.

Features:
    - Read source from files or inline strings.
    - Lex and parse under a chosen dialect (a preset name or a JSON file).
    - Print the AST or the token stream as JSON.
    - Report the first error with its location and a caret underline, or as a
      JSON diagnostic.

Example usage:
    skiff BUILD.sky
    skiff -s "x = [i for i in range(3)]" --dump
    skiff config.sky --dialect extended
    skiff config.sky --dialect my_dialect.json --json-errors

Exit status:
    0 on success, 1 when the source fails to parse, 2 on usage, configuration or I/O errors.

Functions:
    run_skiff(source, is_string=False, dialect=STANDARD, dump=False, show_tokens=False,
              json_errors=False) -> int:
        Runs the pipeline (read → lex → parse → report) and returns the exit status.

    main(argv=None) -> int:
        Parses CLI arguments and invokes `run_skiff`.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from skiff.skiff_codemap import CodeMap
from skiff.skiff_dialect import STANDARD, Dialect, DialectConfigError
from skiff.skiff_errors import ParseError
from skiff.skiff_lexer import tokenize
from skiff.skiff_parser import parse

logger = logging.getLogger(__name__)


def resolve_dialect(spec: str) -> Dialect:
    """Returns the preset named ``spec``, or loads ``spec`` as a JSON dialect file."""
    if spec.endswith(".json") or os.path.sep in spec:
        return Dialect.load_from_json(spec)
    return Dialect.named(spec)


def run_skiff(
    source: str,
    is_string: bool = False,
    dialect: Dialect = STANDARD,
    dump: bool = False,
    show_tokens: bool = False,
    json_errors: bool = False,
) -> int:
    """
    Run the SKIFF front end over one source and report the outcome.

    Args:
        source (str): The SKIFF source code or a path to a file.
        is_string (bool): If True, treats `source` as raw code instead of a file path.
        dialect (Dialect): Dialect to parse under. Defaults to the standard preset.
        dump (bool): If True, prints the AST as JSON.
        show_tokens (bool): If True, prints the token stream before parsing.
        json_errors (bool): If True, reports a parse error as a JSON diagnostic on stdout.

    Returns:
        int: 0 on success, 1 if the source does not parse.

    Raises:
        OSError: If the source file cannot be read.
    """
    filename = "<string>"
    if not is_string:
        filename = source
        with open(source, encoding="utf-8") as f:
            source = f.read()

    codemap = CodeMap()
    source_file = codemap.add_file(filename, source)

    try:
        tokens = tokenize(source, filename)
        if show_tokens:
            for tok in tokens:
                print(f"{tok.start:>6}-{tok.end:<6} {tok.type:<14} {tok.value!r}")
        ast = parse(tokens, codemap, source_file.span, dialect)
    except ParseError as e:
        e.attach(codemap)
        if json_errors:
            print(json.dumps(e.to_diagnostic(), indent=2))
        else:
            print(e.render(), file=sys.stderr)
        return 1

    if dump:
        print(json.dumps(ast.to_dict(), indent=2))
    else:
        logger.info("%s: OK (%d statements)", filename, len(ast.statements))
    return 0


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the SKIFF CLI.

    Supported flags:
        - `-s`, `--string`: Interpret source as a raw string instead of a file path.
        - `-d`, `--dialect`: Preset name (`standard`, `extended`) or path to a JSON dialect.
        - `--dump`: Print the AST as JSON.
        - `--tokens`: Print the token stream.
        - `--json-errors`: Print errors as JSON diagnostics.
        - `-v`, `--verbose`: Enable debug logging.
    """
    parser = argparse.ArgumentParser(prog="skiff")
    parser.add_argument("source", help="Filename or raw source (with -s)")
    parser.add_argument(
        "-s", "--string", action="store_true", help="Interpret source as literal string"
    )
    parser.add_argument(
        "-d",
        "--dialect",
        default="standard",
        help="Dialect preset (standard, extended) or JSON file (default: standard)",
    )
    parser.add_argument("--dump", action="store_true", help="Print the AST as JSON")
    parser.add_argument(
        "--tokens", dest="show_tokens", action="store_true", help="Print the tokens"
    )
    parser.add_argument(
        "--json-errors", action="store_true", help="Report errors as JSON diagnostics"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        dialect = resolve_dialect(args.dialect)
    except DialectConfigError as e:
        print(f"skiff: {e}", file=sys.stderr)
        for problem in e.problems:
            print(f"  - {problem}", file=sys.stderr)
        return 2

    try:
        return run_skiff(
            source=args.source,
            is_string=args.string,
            dialect=dialect,
            dump=args.dump,
            show_tokens=args.show_tokens,
            json_errors=args.json_errors,
        )
    except OSError as e:
        print(f"skiff: cannot read {args.source}: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())

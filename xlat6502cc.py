#!/usr/bin/env python3
"""
xlat6502cc: i386 assembly to 6502 translator CLI

Usage:
    python xlat6502cc.py <input.s> [-o output.asm] [--dialect wide|legacy]
                                   [--org 0x2000] [--zp 0x80] [--annotate] [-O]
                                   [--dump] [--verbose] [--log-file FILE]

The first line of the input is a header and is always skipped.

Examples:
    python xlat6502cc.py output.s -o game.asm
    python xlat6502cc.py output.s --annotate -O
    python xlat6502cc.py output.s --dialect legacy --zp '$E0'
    python xlat6502cc.py output.s --dump                 # parsed instructions only
"""

import argparse
import logging
import sys
import os

# Allow running from project root or as module
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from xlat6502 import Translator, __version__
from xlat6502.codegen import DIALECTS, DEFAULT_DIALECT, DEFAULT_ORG
from xlat6502.errors import ParseError, LayoutError, CodeGenError
from xlat6502.layout import DEFAULT_ZERO_PAGE
from xlat6502.log_setup import setup_logging


def parse_int_arg(value: str) -> int:
    """Parse an integer argument that may be hex (0x...), $ prefix, or decimal."""
    value = value.strip()
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    if value.startswith("$"):
        return int(value[1:], 16)  # 6502 hex convention
    return int(value)


def _dump_program(program):
    """Print the parsed instruction list (debug helper)."""
    for parsed in program:
        print(f"{parsed.number:5}  {parsed.instruction!r}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="xlat6502cc",
        description="Translate compiler-emitted i386 assembly to 6502 (MADS) assembly",
        epilog="Dialects: " + ", ".join(f"{k} ({v['description']})" for k, v in DIALECTS.items()),
    )
    parser.add_argument("input", help="Input i386 assembly file")
    parser.add_argument("-o", "--output", help="Output assembly file (default: stdout)")
    parser.add_argument("--dialect", default=DEFAULT_DIALECT, choices=list(DIALECTS.keys()),
                        help=f"Code-generation dialect (default: {DEFAULT_DIALECT})")
    parser.add_argument("--org", default=None,
                        help=f"Code origin address (hex, default ${DEFAULT_ORG:04X})")
    parser.add_argument("--zp", default=None,
                        help=f"Zero-page base for scratch and registers (default ${DEFAULT_ZERO_PAGE:02X})")
    parser.add_argument("--annotate", action="store_true",
                        help="Precede each translation with the source line as a comment")
    parser.add_argument("-O", "--optimize", action="store_true",
                        help="Run the peephole optimizer on the translated body")
    parser.add_argument("--dump", action="store_true",
                        help="Dump parsed instructions and exit (debug)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print translation details to stderr")
    parser.add_argument("--log-file", default=None, help="Also write a DEBUG log to this file")
    parser.add_argument("--version", action="version", version=f"xlat6502cc {__version__}")

    args = parser.parse_args(argv)

    log = setup_logging(console_level=logging.DEBUG if args.verbose else logging.WARNING,
                        log_file=args.log_file)

    try:
        org = parse_int_arg(args.org) if args.org else DEFAULT_ORG
        zero_page = parse_int_arg(args.zp) if args.zp else DEFAULT_ZERO_PAGE
    except ValueError as e:
        print(f"Error: bad address argument: {e}", file=sys.stderr)
        return 1

    # Read input
    try:
        with open(args.input, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except FileNotFoundError:
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        return 1
    except IOError as e:
        print(f"Error reading {args.input}: {e}", file=sys.stderr)
        return 1

    log.debug("Input:   %s (%d line(s))", args.input, len(lines))
    log.debug("Dialect: %s", args.dialect)
    log.debug("ORG:     $%04X", org)
    log.debug("ZP base: $%02X", zero_page)

    try:
        translator = Translator(org=org, zero_page=zero_page, dialect=args.dialect,
                                annotate=args.annotate, optimize=args.optimize)

        if args.dump:
            _dump_program(translator.parse(lines))
            return 0

        result = translator.translate(lines)

        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(result)
                if not result.endswith("\n"):
                    f.write("\n")
            log.debug("Output:  %s", args.output)
        else:
            sys.stdout.write(result)

        if translator.diagnostics:
            log.warning("%d instruction(s) could not be translated; see the inline diagnostics",
                        len(translator.diagnostics))

    except ParseError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        return 1
    except LayoutError as e:
        print(f"Layout error: {e}", file=sys.stderr)
        return 1
    except CodeGenError as e:
        print(f"Code generation error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Internal translator error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())

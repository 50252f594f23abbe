"""Umjunsik CLI — compile .umm files to IR text."""

from __future__ import annotations

import json
import logging
import sys

from .ast import program_to_dict
from .codegen import generate
from .errors import UmjunsikError
from .parse import Parser
from .tokens import Token, tokenize
from .verify import verify

PHASES: list[str] = ["tokens", "parse", "ir"]

IR_HEADER: str = "=== Generated IR ==="

USAGE: str = """\
umjunsik [OPTIONS] [FILE] [-o OUTPUT]

Compile an Umjunsik (.umm) program to IR. Reads stdin when FILE is omitted.

Options:
  --stop-at PHASE     Stop after phase: tokens, parse, ir (tokens and parse
                      print JSON)
  -o, --output FILE   Write output to FILE instead of stdout
  -q, --quiet         Suppress status messages
  -v, --verbose       Log compiler phases to stderr
  --no-verify         Skip the IR structure check
  -h, --help          Show this help message
"""


class Options:
    """Parsed command-line options."""

    def __init__(self) -> None:
        self.input_file: str | None = None
        self.output_file: str | None = None
        self.stop_at: str = "ir"
        self.quiet: bool = False
        self.verbose: bool = False
        self.verify: bool = True


class UsageError(Exception):
    """Bad command line; exits with status 2."""


def parse_args(args: list[str]) -> Options | None:
    """Parse command-line arguments. Returns None when help was printed."""
    opts = Options()
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return None
        elif arg == "--stop-at":
            if i + 1 >= len(args):
                raise UsageError("--stop-at requires an argument")
            opts.stop_at = args[i + 1]
            i += 2
        elif arg == "-o" or arg == "--output":
            if i + 1 >= len(args):
                raise UsageError(arg + " requires an argument")
            opts.output_file = args[i + 1]
            i += 2
        elif arg == "-q" or arg == "--quiet":
            opts.quiet = True
            i += 1
        elif arg == "-v" or arg == "--verbose":
            opts.verbose = True
            i += 1
        elif arg == "--no-verify":
            opts.verify = False
            i += 1
        elif arg.startswith("-") and arg != "-":
            raise UsageError("unknown flag '" + arg + "'")
        else:
            if opts.input_file is not None:
                raise UsageError("unexpected argument '" + arg + "'")
            opts.input_file = arg
            i += 1
    if opts.stop_at not in PHASES:
        raise UsageError("unknown phase '" + opts.stop_at + "'")
    return opts


def read_source(input_file: str | None) -> str:
    """Read UTF-8 source from a file, or stdin for None or '-'."""
    if input_file is None or input_file == "-":
        raw = sys.stdin.buffer.read()
        name = "<stdin>"
    else:
        name = input_file
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError as e:
            raise UmjunsikError("cannot read '" + name + "': " + str(e.strerror)) from e
    try:
        return raw.decode("utf-8")
    except ValueError as e:
        raise UmjunsikError(name + ": invalid utf-8") from e


def write_output(output: str, output_file: str | None) -> None:
    if output_file is None:
        sys.stdout.write(output)
        return
    try:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(output)
    except OSError as e:
        raise UmjunsikError("cannot write '" + output_file + "': " + str(e.strerror)) from e


def to_json(obj: object) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


def tokens_to_list(tokens: list[Token]) -> list[dict[str, object]]:
    result: list[dict[str, object]] = []
    for tok in tokens:
        d: dict[str, object] = {
            "type": tok.type,
            "value": tok.value,
            "line": tok.line,
            "col": tok.col,
        }
        if tok.count:
            d["count"] = tok.count
        result.append(d)
    return result


def run_pipeline(source: str, stop_at: str, check: bool) -> str:
    """Run phases up to stop_at and return the text to output."""
    tokens = tokenize(source)
    if stop_at == "tokens":
        return to_json(tokens_to_list(tokens)) + "\n"
    program = Parser(tokens).parse_program()
    if stop_at == "parse":
        return to_json(program_to_dict(program)) + "\n"
    ir = generate(program)
    if check:
        verify(ir)
    return ir


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = argv if argv is not None else sys.argv[1:]
    try:
        opts = parse_args(args)
    except UsageError as e:
        print("umjunsik: " + str(e), file=sys.stderr)
        return 2
    if opts is None:
        return 0
    logging.basicConfig(
        level=logging.DEBUG if opts.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        source = read_source(opts.input_file)
        output = run_pipeline(source, opts.stop_at, opts.verify)
        if opts.output_file is not None:
            write_output(output, opts.output_file)
            if not opts.quiet:
                print("umjunsik: output written to " + opts.output_file)
            return 0
        if opts.stop_at == "ir" and not opts.quiet:
            print(IR_HEADER)
        write_output(output, None)
    except UmjunsikError as e:
        print("umjunsik: " + str(e), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

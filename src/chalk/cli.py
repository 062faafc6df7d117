"""Chalk CLI — transpile .chalk files to C#, or stop at an earlier phase."""

from __future__ import annotations

import logging
import sys

from . import analyze, parse, tokenize, transpile
from .dotnet import DotnetError, build_and_run
from .emit import to_source
from .errors import CompileError

PHASES: tuple[str, ...] = ("tokens", "parse", "check")

USAGE: str = """\
chalk [OPTIONS] [FILE]

Transpile a Chalk program to C#. Reads stdin when FILE is omitted or '-'.

Options:
  --stop-at PHASE    Stop after PHASE and print its result:
                       tokens  one token per line
                       parse   canonical Chalk source
                       check   nothing; exit 0 if the program is well-typed
  -o, --output FILE  Write output to FILE instead of stdout
  --namespace NAME   C# namespace for the generated program (default ChalkProgram)
  --run              Build and run the generated program with the .NET SDK
  -v, --verbose      Log pipeline progress to stderr
  -q, --quiet        Only log errors
  -h, --help         Show this help message
"""


def read_source(path: str) -> str | None:
    if path == "" or path == "-":
        return sys.stdin.read()
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("chalk: " + path + ": No such file or directory", file=sys.stderr)
        return None
    except OSError as e:
        print("chalk: " + path + ": " + str(e), file=sys.stderr)
        return None
    try:
        return raw.decode("utf-8")
    except ValueError:
        print("chalk: " + path + ": invalid utf-8", file=sys.stderr)
        return None


def write_output(text: str, path: str) -> int:
    if path == "":
        sys.stdout.write(text)
        return 0
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
    except OSError as e:
        print("chalk: " + path + ": " + str(e), file=sys.stderr)
        return 1
    return 0


def setup_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath = ""
    output = ""
    stop_at = ""
    namespace = "ChalkProgram"
    run = False
    level = logging.WARNING
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg in ("--stop-at", "-o", "--output", "--namespace"):
            if i + 1 >= len(args):
                print("chalk: " + arg + " requires an argument", file=sys.stderr)
                return 2
            value = args[i + 1]
            if arg == "--stop-at":
                if value not in PHASES:
                    print(
                        "chalk: --stop-at must be one of " + ", ".join(PHASES),
                        file=sys.stderr,
                    )
                    return 2
                stop_at = value
            elif arg == "--namespace":
                namespace = value
            else:
                output = value
            i += 2
        elif arg == "--run":
            run = True
            i += 1
        elif arg == "--verbose" or arg == "-v":
            level = logging.DEBUG
            i += 1
        elif arg == "--quiet" or arg == "-q":
            level = logging.ERROR
            i += 1
        elif arg.startswith("-") and arg != "-":
            print("chalk: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("chalk: unexpected argument '" + arg + "'", file=sys.stderr)
            return 2
    if run and stop_at != "":
        print("chalk: --run cannot be combined with --stop-at", file=sys.stderr)
        return 2

    setup_logging(level)
    source = read_source(filepath)
    if source is None:
        return 1

    try:
        if stop_at == "tokens":
            text = "".join(str(tok) + "\n" for tok in tokenize(source))
        elif stop_at == "parse":
            text = to_source(parse(source))
        elif stop_at == "check":
            analyze(source)
            text = ""
        else:
            text = transpile(source, namespace)
    except CompileError as e:
        print("chalk: " + str(e), file=sys.stderr)
        return 1

    if not run:
        return write_output(text, output)
    # The program's own output goes to stdout, so C# text is only kept with -o
    if output != "":
        status = write_output(text, output)
        if status != 0:
            return status
    try:
        result = build_and_run(text, capture=False)
    except DotnetError as e:
        print("chalk: " + str(e), file=sys.stderr)
        return 1
    return result.returncode


if __name__ == "__main__":
    sys.exit(main())

import argparse
import sys
from contextlib import nullcontext

from goxunit.constants import DEFAULT_IGNORED_TESTS
from goxunit.log_parsers import ParseError, ParseOptions, get_parser
from goxunit.models import has_failures
from goxunit.render import write_xml

STDIO_NAMES = ("", "-")


def open_input(filename: str):
    """Open filename for binary reading; "-" or empty means stdin."""
    if filename in STDIO_NAMES:
        return nullcontext(sys.stdin.buffer)
    return open(filename, "rb")


def open_output(filename: str):
    """Open filename for binary writing; "-" or empty means stdout."""
    if filename in STDIO_NAMES:
        return nullcontext(sys.stdout.buffer)
    return open(filename, "wb")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="go2xunit",
        description="Convert go test / gocheck output to xUnit XML.",
    )
    parser.add_argument("--input", default="", help="Input file (default: stdin).")
    parser.add_argument("--output", default="", help="Output file (default: stdout).")
    parser.add_argument(
        "--fail",
        action="store_true",
        help="Exit with non-zero status if any test failed.",
    )
    parser.add_argument(
        "--bamboo",
        action="store_true",
        help="Always wrap suites in <testsuites> (Atlassian Bamboo compatible).",
    )
    parser.add_argument("--gocheck", action="store_true", help="Parse gocheck output.")
    parser.add_argument(
        "--race",
        action="store_true",
        help="Mark tests with data races as failed.",
    )
    parser.add_argument(
        "--ignore-test",
        action="append",
        default=[],
        metavar="NAME",
        help="Additional gocheck test name to ignore (repeatable).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on an unfinished test or package at end of input.",
    )
    parser.add_argument("extra", nargs="*", help=argparse.SUPPRESS)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.extra:
        print(
            f"error: {parser.prog} does not take parameters (did you mean --input?)",
            file=sys.stderr,
        )
        return 1

    ignored = set(DEFAULT_IGNORED_TESTS)
    for name in args.ignore_test:
        if not name.strip():
            print("warning: ignoring empty --ignore-test value", file=sys.stderr)
            continue
        ignored.add(name.strip())

    options = ParseOptions(
        race=args.race,
        ignored_tests=frozenset(ignored),
        strict=args.strict,
    )
    parse = get_parser("gocheck" if args.gocheck else "gotest")

    try:
        input_stream = open_input(args.input)
    except OSError as exc:
        print(f"error: can't open {args.input} for reading: {exc}", file=sys.stderr)
        return 1

    try:
        with input_stream as stream:
            suites = parse(stream, options)
    except ParseError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"error: can't read {args.input or 'stdin'}: {exc}", file=sys.stderr)
        return 1

    if not suites:
        print("error: no tests found", file=sys.stderr)
        return 1

    try:
        output_stream = open_output(args.output)
    except OSError as exc:
        print(f"error: can't open {args.output} for writing: {exc}", file=sys.stderr)
        return 1

    try:
        with output_stream as out:
            write_xml(suites, out, bamboo=args.bamboo)
    except OSError as exc:
        print(f"error writing output: {exc}", file=sys.stderr)
        return 1

    if args.fail and has_failures(suites):
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

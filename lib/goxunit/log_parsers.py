from dataclasses import dataclass
from typing import IO, Callable, Iterable, Union

from goxunit.constants import DEFAULT_IGNORED_TESTS, UNKNOWN_TIME
from goxunit.models import Suite, Test
from goxunit.patterns import (
    BuildFailed,
    Noise,
    SuiteSummary,
    TestEnd,
    TestStart,
    classify_gocheck_line,
    classify_gotest_line,
    is_race_warning,
    iter_lines,
)


class ParseError(ValueError):
    """Malformed test log; parsing stops at the first offending line."""

    def __init__(self, lineno: int, line: str, reason: str):
        self.lineno = lineno
        self.line = line
        self.reason = reason
        message = f"{lineno}: {reason}"
        if line:
            message = f"{message}: {line}"
        super().__init__(message)


@dataclass(frozen=True)
class ParseOptions:
    """
    Knobs shared by both parsers.

    race: a "WARNING: DATA RACE" line inside a test marks that test failed.
    ignored_tests: test names whose start/end markers are skipped (gocheck fixtures).
    finalize_unterminated: record a test that never got its end marker as failed
        with time "N/A" instead of dropping it. None keeps the per-format default:
        on for go test (a panic kills the test binary mid-test), off for gocheck.
    strict: raise at end of input instead of dropping an unfinished test or a
        package that never printed its summary line.
    """

    race: bool = False
    ignored_tests: frozenset = DEFAULT_IGNORED_TESTS
    finalize_unterminated: bool | None = None
    strict: bool = False


class _LogParser:
    finalize_by_default = True

    def __init__(self, options: ParseOptions | None = None):
        self.options = options or ParseOptions()
        if self.options.finalize_unterminated is None:
            self.finalize_unterminated = self.finalize_by_default
        else:
            self.finalize_unterminated = self.options.finalize_unterminated
        self._test: Test | None = None
        self._out: list[str] = []
        self._found_race = False
        self._lineno = 0

    def feed(self, lineno: int, line: str) -> None:
        raise NotImplementedError

    def close(self) -> list[Suite]:
        raise NotImplementedError

    def parse(self, stream: Union[IO, Iterable]) -> list[Suite]:
        for lineno, line in iter_lines(stream):
            self._lineno = lineno
            self.feed(lineno, line)
        return self.close()

    def _start_test(self, name: str) -> None:
        self._test = Test(name=name)
        self._found_race = False

    def _check_race(self, line: str) -> None:
        if self.options.race and is_race_warning(line):
            self._found_race = True

    def _take_output(self) -> str:
        message = "\n".join(self._out)
        self._out = []
        return message

    def _mark_unterminated(self, test: Test) -> Test:
        test.failed = True
        test.skipped = False
        test.time = UNKNOWN_TIME
        return test


class GoTestParser(_LogParser):
    """
    State machine over `go test -v` output.

    One package suite is open at a time. It collects finished tests until the
    package summary line (`ok  pkg  0.01s` or `FAIL  pkg  0.01s`) seals it.
    Output between two tests belongs to the earlier one and is attached when
    the next boundary (test start or package summary) arrives.
    """

    def __init__(self, options: ParseOptions | None = None):
        super().__init__(options)
        self.suites: list[Suite] = []
        self._suite: Suite | None = None

    def feed(self, lineno: int, line: str) -> None:
        kind = classify_gotest_line(line)
        if isinstance(kind, Noise):
            return
        if isinstance(kind, BuildFailed):
            raise ParseError(lineno, line, "package build failed")
        if isinstance(kind, TestStart):
            # still open: the previous test panicked
            self._close_unterminated()
            self._flush_output()
            self._start_test(kind.name)
            return

        self._check_race(line)

        if isinstance(kind, TestEnd):
            self._end_test(lineno, line, kind)
        elif isinstance(kind, SuiteSummary):
            self._close_unterminated()
            self._flush_output()
            suite = self._suite or Suite()
            suite.name = kind.name
            suite.time = kind.time
            self.suites.append(suite)
            self._suite = None
        else:
            self._out.append(line)

    def close(self) -> list[Suite]:
        if self.options.strict:
            if self._test is not None:
                raise ParseError(
                    self._lineno, "", f"end of input while {self._test.name} is running"
                )
            if self._suite is not None:
                raise ParseError(self._lineno, "", "end of input before package summary")
        return self.suites

    def _current_suite(self) -> Suite:
        if self._suite is None:
            self._suite = Suite()
        return self._suite

    def _end_test(self, lineno: int, line: str, kind: TestEnd) -> None:
        test = self._test
        if test is None:
            raise ParseError(lineno, line, "orphan end test")
        if kind.name != test.name:
            raise ParseError(lineno, line, f"name mismatch, expected {test.name}")
        test.failed = kind.status == "FAIL" or self._found_race
        test.skipped = kind.status == "SKIP"
        test.time = kind.time
        test.message = self._take_output()
        self._current_suite().tests.append(test)
        self._test = None

    def _close_unterminated(self) -> None:
        if self._test is None:
            return
        test, self._test = self._test, None
        if self.finalize_unterminated:
            self._current_suite().tests.append(self._mark_unterminated(test))
        else:
            self._out = []

    def _flush_output(self) -> None:
        """Append pending output to the last finished test of the open suite."""
        if self._out and self._suite is not None and self._suite.tests:
            last = self._suite.tests[-1]
            message = "\n".join(self._out)
            last.message = f"{last.message}\n{message}" if last.message else message
        self._out = []


class GoCheckParser(_LogParser):
    """
    State machine over `go test -gocheck.vv` output.

    Every marker names its suite (`Suite.TestName`), so suites are collected by
    name and may receive tests from non-contiguous parts of the log. They are
    returned in the order their first test finished.
    """

    finalize_by_default = False

    def __init__(self, options: ParseOptions | None = None):
        super().__init__(options)
        self._suites: dict[str, Suite] = {}
        self._suite_name = ""

    def feed(self, lineno: int, line: str) -> None:
        kind = classify_gocheck_line(line)
        if isinstance(kind, TestStart):
            if kind.name in self.options.ignored_tests:
                return
            if self._test is not None:
                raise ParseError(
                    lineno,
                    line,
                    f"start of {kind.suite}.{kind.name} in middle of "
                    f"{self._suite_name}.{self._test.name}",
                )
            self._suite_name = kind.suite
            self._out = []
            self._start_test(kind.name)
            return

        self._check_race(line)

        if isinstance(kind, TestEnd):
            if kind.name in self.options.ignored_tests:
                return
            self._end_test(lineno, line, kind)
        elif self._test is not None:
            self._out.append(line)

    def close(self) -> list[Suite]:
        if self._test is not None:
            if self.finalize_unterminated:
                test = self._mark_unterminated(self._test)
                test.message = self._take_output()
                self._suite_for(self._suite_name).tests.append(test)
                self._test = None
            elif self.options.strict:
                raise ParseError(
                    self._lineno,
                    "",
                    f"end of input while {self._suite_name}.{self._test.name} is running",
                )
        return list(self._suites.values())

    def _suite_for(self, name: str) -> Suite:
        suite = self._suites.get(name)
        if suite is None:
            suite = self._suites[name] = Suite(name=name)
        return suite

    def _end_test(self, lineno: int, line: str, kind: TestEnd) -> None:
        test = self._test
        if test is None:
            raise ParseError(lineno, line, "orphan end")
        if kind.suite != self._suite_name or kind.name != test.name:
            raise ParseError(
                lineno,
                line,
                f"suite/name mismatch: got {kind.suite}.{kind.name}, "
                f"expected {self._suite_name}.{test.name}",
            )
        test.message = self._take_output()
        test.time = kind.time.strip()
        test.failed = kind.status in ("FAIL", "PANIC") or self._found_race
        test.errored = kind.status == "MISS"
        test.skipped = kind.status == "SKIP"
        self._suite_for(self._suite_name).tests.append(test)
        self._test = None
        self._suite_name = ""


def parse_log_gotest(
    stream: Union[IO, Iterable], options: ParseOptions | None = None
) -> list[Suite]:
    """
    Parser for test logs generated with 'go test -v'

    Args:
        stream: binary or text stream (or iterable of lines) with the log
        options (ParseOptions): race detection, panic policy, strictness
    Returns:
        list: suites in the order their package summary lines appeared
    """
    return GoTestParser(options).parse(stream)


def parse_log_gocheck(
    stream: Union[IO, Iterable], options: ParseOptions | None = None
) -> list[Suite]:
    """
    Parser for test logs generated with gocheck ('go test -gocheck.vv')

    Args:
        stream: binary or text stream (or iterable of lines) with the log
        options (ParseOptions): race detection, ignored fixtures, panic policy
    Returns:
        list: suites in the order they were first seen
    """
    return GoCheckParser(options).parse(stream)


def status_map(suites: list[Suite]) -> dict[str, str]:
    """Flatten parsed suites into a {"Suite::Test": status} mapping."""
    return {
        f"{suite.name}::{test.name}": test.status.value
        for suite in suites
        for test in suite.tests
    }


NAME_TO_PARSER: dict[str, Callable[..., list[Suite]]] = {
    "gotest": parse_log_gotest,
    "gocheck": parse_log_gocheck,
}


def get_parser(parser_name: str) -> Callable[..., list[Suite]]:
    parser = NAME_TO_PARSER.get(parser_name)
    if parser is None:
        raise ValueError(f"Unknown log parser: {parser_name}")
    return parser

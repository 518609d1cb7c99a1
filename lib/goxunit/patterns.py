import re
import unicodedata
from dataclasses import dataclass
from typing import IO, Iterable, Iterator, Union

from goxunit.constants import GOCHECK_END_KEYWORDS, GOTEST_END_KEYWORDS

# go test
# === RUN TestAdd
GOTEST_START_RE = re.compile(r"^=== RUN:? (?P<name>[A-Za-z_]\S*)", re.ASCII)
# --- PASS: TestSub (0.00 seconds)
# --- FAIL: TestSubFail (0.00s)
GOTEST_END_RE = re.compile(
    r"^--- (?P<status>" + "|".join(GOTEST_END_KEYWORDS) + r"): "
    r"(?P<name>[A-Za-z_]\S*) \((?P<time>\d+(?:\.\d+)?)",
    re.ASCII,
)
# ok  	_/home/user/src/anotherTest	0.000s
# FAIL	_/home/user/src/xunit	0.004s
GOTEST_SUITE_RE = re.compile(
    r"^(?P<status>ok|FAIL)[ \t]+(?P<name>[^ \t]+)[ \t]+(?P<time>\d+\.\d+)", re.ASCII
)
# ?   	alipay	[no test files]
GOTEST_NO_FILES_RE = re.compile(r"^\?.*\[no test files\]$")
# FAIL	node/config [build failed]
GOTEST_BUILD_FAILED_RE = re.compile(r"^FAIL.*\[(?:build|setup) failed\]$")
GOTEST_EXIT_RE = re.compile(r"^exit status -?\d+")

# gocheck
# START: mmath_test.go:16: MySuite.TestAdd
GOCHECK_START_RE = re.compile(
    r"START: [^:]+:[^:]+: (?P<suite>[A-Za-z_]\w*)\.(?P<name>[A-Za-z_]\w*)", re.ASCII
)
# PASS: mmath_test.go:16: MySuite.TestAdd	0.000s
# FAIL: mmath_test.go:35: MySuite.TestDiv
GOCHECK_END_RE = re.compile(
    r"(?P<status>" + "|".join(GOCHECK_END_KEYWORDS) + r"): [^:]+:[^:]+: "
    r"(?P<suite>[A-Za-z_]\w*)\.(?P<name>[A-Za-z_]\w*)(?:\s+(?P<time>\d+\.\d+))?",
    re.ASCII,
)

RACE_RE = re.compile(r"^WARNING: DATA RACE")


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class Noise:
    pass


@dataclass(frozen=True)
class BuildFailed:
    line: str


@dataclass(frozen=True)
class TestStart:
    name: str
    suite: str = ""


@dataclass(frozen=True)
class TestEnd:
    status: str
    name: str
    time: str = ""
    suite: str = ""


@dataclass(frozen=True)
class SuiteSummary:
    status: str
    name: str
    time: str


LineKind = Union[NoMatch, Noise, BuildFailed, TestStart, TestEnd, SuiteSummary]

NO_MATCH = NoMatch()
NOISE = Noise()


# NEL is Cc but still counts as whitespace; \v and \f are not allowed in XML
KEPT_CONTROL_CHARS = frozenset("\t\x85")


def _is_kept(ch: str) -> bool:
    if ch.isprintable() or ch in KEPT_CONTROL_CHARS:
        return True
    return ch.isspace() and unicodedata.category(ch) != "Cc"


def strip_unprintable(raw: Union[bytes, str]) -> str:
    """Drop the line terminator, control characters other than tab and NEL, and anything unprintable."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="ignore")
    if raw.endswith("\n"):
        raw = raw[:-1]
    if raw.endswith("\r"):
        raw = raw[:-1]
    return "".join(ch for ch in raw if _is_kept(ch))


def iter_lines(stream: Union[IO, Iterable]) -> Iterator[tuple[int, str]]:
    """
    Yield sanitized lines of a test log with their 1-based line numbers.

    Args:
        stream: binary or text file object, or any iterable of lines
    Returns:
        iterator of (line number, line) pairs
    """
    if isinstance(stream, (bytes, str)):
        raise TypeError("expected a stream or an iterable of lines, not a bare string")
    lineno = 0
    for raw in stream:
        lineno += 1
        yield lineno, strip_unprintable(raw)


def classify_gotest_line(line: str) -> LineKind:
    """
    Classify one line of `go test -v` output.

    Precedence: no test files, build failure, test start, test end,
    package summary, exit noise. Anything else is NoMatch and becomes
    captured test output.
    """
    if GOTEST_NO_FILES_RE.match(line):
        return NOISE
    if GOTEST_BUILD_FAILED_RE.match(line):
        return BuildFailed(line)
    if m := GOTEST_START_RE.match(line):
        return TestStart(m.group("name"))
    if m := GOTEST_END_RE.match(line):
        return TestEnd(m.group("status"), m.group("name"), m.group("time"))
    if m := GOTEST_SUITE_RE.match(line):
        return SuiteSummary(m.group("status"), m.group("name"), m.group("time"))
    if GOTEST_EXIT_RE.match(line) or line in ("FAIL", "PASS"):
        return NOISE
    return NO_MATCH


def classify_gocheck_line(line: str) -> LineKind:
    """Classify one line of `go test -gocheck.vv` output."""
    if m := GOCHECK_START_RE.search(line):
        return TestStart(m.group("name"), m.group("suite"))
    if m := GOCHECK_END_RE.search(line):
        return TestEnd(
            m.group("status"), m.group("name"), m.group("time") or "", m.group("suite")
        )
    return NO_MATCH


def is_race_warning(line: str) -> bool:
    return RACE_RE.match(line) is not None

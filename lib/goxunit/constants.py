from enum import Enum


class TestStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"


GOTEST_END_KEYWORDS = ("PASS", "FAIL", "SKIP")
GOCHECK_END_KEYWORDS = ("PASS", "FAIL", "SKIP", "MISS", "PANIC")

# gocheck fixture methods reported with START/PASS markers like real tests
DEFAULT_IGNORED_TESTS = frozenset({"SetUpTest", "TearDownTest"})

UNKNOWN_TIME = "N/A"

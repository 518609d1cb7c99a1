from dataclasses import dataclass, field

from goxunit.constants import TestStatus


@dataclass
class Test:
    """One executed test case."""

    name: str
    time: str = ""
    message: str = ""
    failed: bool = False
    skipped: bool = False
    errored: bool = False

    @property
    def status(self) -> TestStatus:
        if self.failed:
            return TestStatus.FAILED
        if self.errored:
            return TestStatus.ERROR
        if self.skipped:
            return TestStatus.SKIPPED
        return TestStatus.PASSED


@dataclass
class Suite:
    """A named group of tests: one Go package, or one gocheck suite type."""

    name: str = ""
    time: str = ""
    tests: list[Test] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.tests)

    @property
    def num_failed(self) -> int:
        return sum(1 for test in self.tests if test.failed)

    @property
    def num_errors(self) -> int:
        return sum(1 for test in self.tests if test.errored)

    @property
    def num_skipped(self) -> int:
        return sum(1 for test in self.tests if test.skipped)


@dataclass
class Report:
    suites: list[Suite]
    multi: bool = False

    @classmethod
    def from_suites(cls, suites: list[Suite], bamboo: bool = False) -> "Report":
        """Wrap suites for rendering; Bamboo wants <testsuites> even around a single suite."""
        return cls(suites=list(suites), multi=bamboo or len(suites) > 1)


def has_failures(suites: list[Suite]) -> bool:
    return any(suite.num_failed > 0 for suite in suites)

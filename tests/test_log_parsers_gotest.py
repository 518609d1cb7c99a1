import io

import pytest

from goxunit.log_parsers import (
    GoTestParser,
    ParseError,
    ParseOptions,
    get_parser,
    parse_log_gotest,
    parse_log_gocheck,
    status_map,
)

GOTEST_LOG = """\
=== RUN TestAdd
--- PASS: TestAdd (0.00 seconds)
=== RUN TestDiv
--- FAIL: TestDiv (0.00 seconds)
\tmmath_test.go:27: bad div
=== RUN TestSkip
--- SKIP: TestSkip (0.00 seconds)
\tmmath_test.go:33: skipping
FAIL
exit status 1
FAIL\t_/home/user/mmath\t0.004s
"""


def _stream(text: str) -> io.BytesIO:
    return io.BytesIO(text.encode("utf-8"))


def test_round_trip_single_test():
    lines = ["=== RUN TestAdd", "--- PASS: TestAdd (0.01)", "ok  pkg/math  0.01"]
    suites = parse_log_gotest(lines)

    assert len(suites) == 1
    suite = suites[0]
    assert suite.name == "pkg/math"
    assert suite.time == "0.01"
    assert [t.name for t in suite.tests] == ["TestAdd"]
    test = suite.tests[0]
    assert test.time == "0.01"
    assert not test.failed
    assert not test.skipped


def test_output_between_tests_belongs_to_previous_test():
    suites = parse_log_gotest(_stream(GOTEST_LOG))

    assert len(suites) == 1
    suite = suites[0]
    assert suite.name == "_/home/user/mmath"
    assert suite.time == "0.004"
    add, div, skip = suite.tests
    assert (add.failed, add.skipped, add.message) == (False, False, "")
    assert div.failed and div.message == "\tmmath_test.go:27: bad div"
    assert skip.skipped and not skip.failed
    assert skip.message == "\tmmath_test.go:33: skipping"


def test_noise_lines_are_not_captured():
    suites = parse_log_gotest(_stream(GOTEST_LOG))
    messages = "\n".join(t.message for t in suites[0].tests)
    assert "exit status" not in messages
    assert "FAIL" not in messages


def test_output_inside_test_becomes_its_message():
    lines = [
        "=== RUN TestA",
        "some log line",
        "another",
        "--- FAIL: TestA (0.10s)",
        "ok  \tpkg\t0.11s",
    ]
    test = parse_log_gotest(lines)[0].tests[0]
    assert test.failed
    assert test.message == "some log line\nanother"


def test_one_testcase_per_end_marker_per_package():
    lines = [
        "=== RUN TestA",
        "--- PASS: TestA (0.00s)",
        "=== RUN TestB",
        "--- PASS: TestB (0.00s)",
        "ok  \tpkg/one\t0.01s",
        "=== RUN TestC",
        "--- FAIL: TestC (0.00s)",
        "FAIL\tpkg/two\t0.02s",
    ]
    suites = parse_log_gotest(lines)
    assert [s.name for s in suites] == ["pkg/one", "pkg/two"]
    assert [len(s.tests) for s in suites] == [2, 1]
    assert suites[1].num_failed == 1


def test_panic_between_starts_marks_first_test_failed():
    lines = [
        "=== RUN TestA",
        "=== RUN TestB",
        "--- PASS: TestB (0.01s)",
        "ok  \tpkg\t0.02s",
    ]
    first, second = parse_log_gotest(lines)[0].tests
    assert first.name == "TestA"
    assert first.failed and first.time == "N/A"
    assert second.name == "TestB" and not second.failed


def test_panic_before_summary_keeps_panic_output():
    lines = [
        "=== RUN TestA",
        "panic: boom",
        "goroutine 1 [running]:",
        "FAIL\tpkg\t0.01s",
    ]
    suites = parse_log_gotest(lines)
    (test,) = suites[0].tests
    assert test.failed
    assert test.time == "N/A"
    assert test.message == "panic: boom\ngoroutine 1 [running]:"


def test_unterminated_test_can_be_dropped():
    lines = [
        "=== RUN TestA",
        "panic: boom",
        "=== RUN TestB",
        "--- PASS: TestB (0.01s)",
        "ok  \tpkg\t0.02s",
    ]
    options = ParseOptions(finalize_unterminated=False)
    suites = parse_log_gotest(lines, options)
    assert [t.name for t in suites[0].tests] == ["TestB"]
    assert suites[0].tests[0].message == ""


@pytest.mark.parametrize("race, failed", [(True, True), (False, False)])
def test_race_warning_fails_passing_test(race, failed):
    lines = [
        "=== RUN TestRace",
        "WARNING: DATA RACE",
        "Write by goroutine 7:",
        "--- PASS: TestRace (0.00s)",
        "=== RUN TestClean",
        "--- PASS: TestClean (0.00s)",
        "ok  \tpkg\t0.01s",
    ]
    racy, clean = parse_log_gotest(lines, ParseOptions(race=race))[0].tests
    assert racy.failed is failed
    assert "WARNING: DATA RACE" in racy.message
    assert not clean.failed


def test_summary_without_tests_gives_empty_suite():
    suites = parse_log_gotest(["ok  \tpkg/quiet\t0.001s"])
    assert len(suites) == 1
    assert suites[0].name == "pkg/quiet"
    assert suites[0].tests == []


def test_no_test_files_gives_no_suites():
    assert parse_log_gotest(["?   \tpkg/empty\t[no test files]"]) == []


def test_build_failure_aborts():
    lines = ["ok  \tpkg/a\t0.01s", "FAIL  pkg/x [build failed]"]
    with pytest.raises(ParseError) as excinfo:
        parse_log_gotest(lines)
    assert excinfo.value.lineno == 2
    assert str(excinfo.value) == "2: package build failed: FAIL  pkg/x [build failed]"


def test_orphan_end_is_an_error():
    with pytest.raises(ParseError) as excinfo:
        parse_log_gotest(["noise", "--- PASS: TestA (0.00s)"])
    assert excinfo.value.lineno == 2
    assert str(excinfo.value).startswith("2: orphan end test")


def test_name_mismatch_is_an_error():
    with pytest.raises(ParseError) as excinfo:
        parse_log_gotest(["=== RUN TestA", "--- PASS: TestB (0.00s)"])
    assert excinfo.value.lineno == 2
    assert "expected TestA" in str(excinfo.value)


def test_package_without_summary_is_dropped():
    lines = ["=== RUN TestA", "--- PASS: TestA (0.00s)"]
    assert parse_log_gotest(lines) == []


@pytest.mark.parametrize(
    "lines, reason",
    [
        (["=== RUN TestA", "--- PASS: TestA (0.00s)"], "before package summary"),
        (["=== RUN TestA", "still running"], "while TestA is running"),
    ],
)
def test_strict_mode_reports_unfinished_input(lines, reason):
    with pytest.raises(ParseError) as excinfo:
        parse_log_gotest(lines, ParseOptions(strict=True))
    assert excinfo.value.lineno == 2
    assert reason in str(excinfo.value)


def test_control_characters_are_stripped_before_matching():
    data = b"=== RUN TestA\x1b\n--- PASS: TestA\x00 (0.20s)\r\nok  \tpkg\t0.2s\n"
    suites = parse_log_gotest(io.BytesIO(data))
    assert suites[0].tests[0].name == "TestA"
    assert suites[0].tests[0].time == "0.20"


def test_parser_can_be_fed_line_by_line():
    parser = GoTestParser()
    parser.feed(1, "=== RUN TestA")
    parser.feed(2, "--- SKIP: TestA (0.00s)")
    parser.feed(3, "ok  \tpkg\t0.00s")
    suites = parser.close()
    assert suites[0].tests[0].skipped


def test_status_map():
    suites = parse_log_gotest(_stream(GOTEST_LOG))
    assert status_map(suites) == {
        "_/home/user/mmath::TestAdd": "PASSED",
        "_/home/user/mmath::TestDiv": "FAILED",
        "_/home/user/mmath::TestSkip": "SKIPPED",
    }


def test_get_parser():
    assert get_parser("gotest") is parse_log_gotest
    assert get_parser("gocheck") is parse_log_gocheck
    for name in ("junit", "parse_log_gotest"):
        with pytest.raises(ValueError):
            get_parser(name)

from benchbot.model import FailureReport, SuccessReport
from benchbot.render import (
    GITHUB_COMMENT_LIMIT,
    TRUNCATE_MESSAGE,
    clamp,
    format_failure,
    render_exception,
    render_failure,
    render_success,
)


def make_report(output: str, extra_info: str = "Commit: abc") -> SuccessReport:
    return SuccessReport(
        title="Runtime benchmark (runtime)",
        output=output,
        extra_info=extra_info,
        bench_command="`cargo bench`",
    )


def formatting_length(extra_info: str = "Commit: abc") -> int:
    return len(render_success(make_report("", extra_info), "feature"))


def test_render_layout():
    body = render_success(make_report("line 1\nline 2"), "feature")
    assert body == (
        'Benchmark **Runtime benchmark (runtime)** for branch "feature" '
        "with command `cargo bench`\n"
        "\n"
        "<details>\n"
        "<summary>Results</summary>\n"
        "\n"
        "```\n"
        "line 1\n"
        "line 2\n"
        "```\n"
        "\n"
        "</details>\n"
        "\n"
        "Commit: abc"
    )


def test_render_trims_outer_whitespace():
    body = render_success(make_report("out", extra_info="\n\n"), "feature")
    assert body.endswith("</details>")


def test_short_output_is_not_truncated():
    output = "x" * 1000
    body = render_success(make_report(output), "feature")
    assert output in body
    assert TRUNCATE_MESSAGE not in body
    assert len(body) < GITHUB_COMMENT_LIMIT


def test_output_filling_limit_exactly_is_kept():
    output = "x" * (GITHUB_COMMENT_LIMIT - formatting_length())
    body = render_success(make_report(output), "feature")
    assert len(body) == GITHUB_COMMENT_LIMIT
    assert TRUNCATE_MESSAGE not in body


def test_over_limit_output_is_truncated():
    output = "y" * (GITHUB_COMMENT_LIMIT + 1000 - formatting_length())
    body = render_success(make_report(output), "feature")
    assert len(body) <= GITHUB_COMMENT_LIMIT
    assert f"{TRUNCATE_MESSAGE}\n```" in body
    assert body.split("\n```")[1].endswith(TRUNCATE_MESSAGE)


def test_truncation_is_deterministic_and_exact():
    report = make_report("z" * (3 * GITHUB_COMMENT_LIMIT))
    first = render_success(report, "feature")
    second = render_success(report, "feature")
    assert first == second
    assert len(first) == GITHUB_COMMENT_LIMIT
    assert f"{TRUNCATE_MESSAGE}\n```" in first


def test_oversized_extra_info_is_clamped():
    report = make_report("out", extra_info="e" * (2 * GITHUB_COMMENT_LIMIT))
    body = render_success(report, "feature")
    assert len(body) == GITHUB_COMMENT_LIMIT
    assert body.endswith(TRUNCATE_MESSAGE)


def test_format_failure_without_error():
    assert format_failure(FailureReport("boom")) == "boom"


def test_format_failure_with_error():
    report = FailureReport("boom", error=ValueError("bad value"))
    assert format_failure(report) == "boom: bad value"


def test_render_failure():
    body = render_failure(FailureReport("boom"), "feature")
    assert body == (
        "Error running benchmark: **feature**\n\n"
        "<details><summary>stdout</summary>boom</details>"
    )


def test_render_exception_includes_traceback():
    try:
        raise RuntimeError("kaputt")
    except RuntimeError as e:
        body = render_exception(e)

    assert body.startswith("Exception caught: `kaputt`\n")
    assert "Traceback (most recent call last)" in body
    assert "RuntimeError: kaputt" in body


def test_clamp():
    assert clamp("short") == "short"
    long = "a" * (GITHUB_COMMENT_LIMIT + 1)
    assert len(clamp(long)) == GITHUB_COMMENT_LIMIT
    assert clamp(long).endswith(TRUNCATE_MESSAGE)

"""
Comment bodies posted back to the pull request.

GitHub rejects issue comments longer than ``GITHUB_COMMENT_LIMIT``
characters. Every body produced here is at most that long; benchmark output
is cut at the end and the cut is marked with ``TRUNCATE_MESSAGE``.
"""
import traceback

from benchbot.model import FailureReport, SuccessReport

GITHUB_COMMENT_LIMIT = 65536
TRUNCATE_MESSAGE = "<truncated>..."


def clamp(body: str, limit: int = GITHUB_COMMENT_LIMIT) -> str:
    if len(body) <= limit:
        return body
    return body[: limit - len(TRUNCATE_MESSAGE)] + TRUNCATE_MESSAGE


def _success_parts(report: SuccessReport, branch: str):
    prefix = (
        f'Benchmark **{report.title}** for branch "{branch}" '
        f"with command {report.bench_command}\n"
        "\n"
        "<details>\n"
        "<summary>Results</summary>\n"
        "\n"
        "```"
    )
    suffix = "```\n\n</details>"
    return prefix, suffix


def _assemble(prefix: str, output: str, suffix: str, extra_info: str) -> str:
    return f"{prefix}\n{output}\n{suffix}\n\n{extra_info}".strip()


def render_success(
    report: SuccessReport, branch: str, limit: int = GITHUB_COMMENT_LIMIT
) -> str:
    prefix, suffix = _success_parts(report, branch)

    body = _assemble(prefix, report.output, suffix, report.extra_info)
    if len(body) <= limit:
        return body

    # output sits between fixed parts, so the overhead is measured without it
    formatting_length = len(_assemble(prefix, "", suffix, report.extra_info))
    budget = limit - formatting_length - len(TRUNCATE_MESSAGE)
    if budget < 0:
        return clamp(body, limit)

    output = report.output[:budget] + TRUNCATE_MESSAGE
    return _assemble(prefix, output, suffix, report.extra_info)


def format_failure(report: FailureReport) -> str:
    if report.error is None:
        return report.message
    return f"{report.message}: {report.error}"


def render_failure(report: FailureReport, branch: str) -> str:
    return clamp(
        f"Error running benchmark: **{branch}**\n\n"
        f"<details><summary>stdout</summary>{format_failure(report)}</details>"
    )


def render_exception(error: BaseException) -> str:
    stack = "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    )
    return clamp(f"Exception caught: `{error}`\n{stack}")

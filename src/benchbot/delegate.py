from enum import Enum
import logging
import shlex
import tempfile
from typing import Dict, Mapping, Optional, Protocol

from benchbot import config as app_config
from benchbot.model import BenchConfig, FailureReport, SuccessReport
from benchbot.runner import Runner

logger = logging.getLogger("benchbot")


class DelegateKind(Enum):
    runtime = "runtime"
    branch = "branch"


RUNTIME_ACTIONS = ("runtime", "xcm")


def select_delegate(action: str) -> DelegateKind:
    if action in RUNTIME_ACTIONS:
        return DelegateKind.runtime
    return DelegateKind.branch


class BenchmarkDelegate(Protocol):
    async def run(self, config: BenchConfig):
        ...


class DelegateError(Exception):
    pass


def _redact(text: str, secret: Optional[str]) -> str:
    if not secret:
        return text
    return text.replace(secret, "***")


class CommandDelegate:
    """
    Check out the pull request branch into a scratch directory and run a
    command template there.

    The template may reference ``{action}``, ``{extra}``, ``{branch}`` and
    ``{base_branch}``; every substituted word is shell-quoted.
    """

    def __init__(self, runner: Runner, title: str, command_template: str):
        self.runner = runner
        self.title = title
        self.command_template = command_template

    def build_command(self, config: BenchConfig) -> str:
        return self.command_template.format(
            action=shlex.quote(config.action) if config.action else "",
            extra=" ".join(shlex.quote(word) for word in config.extra.split()),
            branch=shlex.quote(config.branch),
            base_branch=shlex.quote(config.base_branch),
        ).strip()

    async def _git(self, args: str, cwd: str, token: Optional[str]) -> str:
        result = await self.runner.run(f"git {args}", cwd=cwd)
        if result.error is not None:
            raise DelegateError(_redact(str(result.error), token))
        return result.stdout.strip()

    async def run(self, config: BenchConfig):
        push = await config.get_push_domain()
        origin = f"{push.url}/{config.owner}/{config.repo}.git"
        head = f"{push.url}/{config.contributor}/{config.repo}.git"

        with tempfile.TemporaryDirectory(prefix="benchbot-") as workdir:
            try:
                await self._git(
                    f"clone --quiet --branch {shlex.quote(config.base_branch)} "
                    f"{shlex.quote(origin)} .",
                    workdir,
                    push.token,
                )
                await self._git(
                    f"fetch --quiet {shlex.quote(head)} {shlex.quote(config.branch)}",
                    workdir,
                    push.token,
                )
                await self._git("checkout --quiet --detach FETCH_HEAD", workdir, None)
                sha = await self._git("rev-parse HEAD", workdir, None)
            except DelegateError as e:
                return FailureReport(
                    f"Failed to check out branch {config.branch}", error=e
                )

            command = self.build_command(config)
            logger.info("Running `%s` on %s@%s", command, config.branch, sha)
            result = await self.runner.run(command, cwd=workdir)

        if result.error is not None:
            logger.error("Benchmark stdout:\n%s", result.stdout)
            return FailureReport(
                f"Benchmark command `{command}` failed",
                error=DelegateError(_redact(result.stderr.strip(), push.token)),
            )

        title = self.title
        if config.action:
            title = f"{title} ({config.action})"

        return SuccessReport(
            title=title,
            output=result.stdout,
            extra_info=f"Commit: {sha}\nBase branch: {config.base_branch}",
            bench_command=f"`{command}`",
        )


def make_delegates(runner: Runner) -> Mapping[DelegateKind, BenchmarkDelegate]:
    delegates: Dict[DelegateKind, BenchmarkDelegate] = {
        DelegateKind.runtime: CommandDelegate(
            runner, "Runtime benchmark", app_config.BENCH_RUNTIME_COMMAND
        ),
        DelegateKind.branch: CommandDelegate(
            runner, "Branch benchmark", app_config.BENCH_BRANCH_COMMAND
        ),
    }
    return delegates

import asyncio
from datetime import timedelta
from enum import Enum
import functools
import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Optional

from gidgethub.abc import GitHubAPI
import humanize
import pydantic

from benchbot import config as app_config
from benchbot.command import is_applicable, parse_command
from benchbot.credentials import MissingInstallation, make_push_domain_provider
from benchbot.delegate import BenchmarkDelegate, DelegateKind, select_delegate
from benchbot.github.api import API
from benchbot.logger import log_fatal
from benchbot.metric import (
    benchmark_counter,
    benchmark_duration,
    error_counter,
    webhook_skipped_counter,
)
from benchbot.model import BenchConfig, FailureReport, TriggerEvent
from benchbot.render import render_exception, render_failure, render_success
from benchbot.runner import Runner
from benchbot.sink import CommentSink, SinkFactory, make_sink_factory

logger = logging.getLogger("benchbot")

PushDomainFactory = Callable[[Optional[int]], Callable[[], Awaitable[Any]]]
ApiFactory = Callable[[Optional[int]], Awaitable[API]]


class DispatchState(Enum):
    idle = "idle"
    filtering = "filtering"
    validating = "validating"
    preflight = "preflight"
    running = "running"
    reporting = "reporting"
    done = "done"
    aborted = "aborted"


class Dispatch:
    """Per-event state: nothing here is shared between deliveries."""

    state: DispatchState
    comment_id: Optional[int]

    def __init__(self, event: TriggerEvent):
        self.event = event
        self.sink: Optional[CommentSink] = None
        self.state = DispatchState.idle
        self.comment_id = None

    def transition(self, state: DispatchState) -> None:
        logger.debug("%s: %s -> %s", self.event, self.state.value, state.value)
        self.state = state

    async def abort(self, body: Optional[str] = None) -> None:
        if body is not None:
            try:
                await self.sink.create(body)
            except Exception:
                error_counter.labels(context="abort_comment").inc()
                logger.error(
                    "Unable to post error comment on %s", self.event, exc_info=True
                )
        self.transition(DispatchState.aborted)


class Dispatcher:
    def __init__(
        self,
        delegates: Mapping[DelegateKind, BenchmarkDelegate],
        runner: Runner,
        push_domain_factory: PushDomainFactory,
        sink_factory: Optional[SinkFactory] = None,
        base_branch: Optional[str] = None,
        toolchain_command: Optional[str] = None,
        delegate_timeout: Optional[float] = None,
    ):
        self.delegates = delegates
        self.runner = runner
        self.push_domain_factory = push_domain_factory
        self.sink_factory = sink_factory or make_sink_factory(app_config.DEBUG)
        self.base_branch = base_branch or app_config.BASE_BRANCH
        self.toolchain_command = toolchain_command or app_config.TOOLCHAIN_COMMAND
        self.delegate_timeout = delegate_timeout

        logger.debug("base branch: %s", self.base_branch)

    @classmethod
    def from_config(
        cls,
        gh: GitHubAPI,
        delegates: Mapping[DelegateKind, BenchmarkDelegate],
        runner: Runner,
    ) -> "Dispatcher":
        return cls(
            delegates=delegates,
            runner=runner,
            push_domain_factory=functools.partial(make_push_domain_provider, gh),
            sink_factory=make_sink_factory(app_config.DEBUG),
            base_branch=app_config.BASE_BRANCH,
            toolchain_command=app_config.TOOLCHAIN_COMMAND,
            delegate_timeout=app_config.DELEGATE_TIMEOUT,
        )

    async def handle(
        self, payload: Mapping[str, Any], api_factory: ApiFactory
    ) -> DispatchState:
        """
        Run one ``issue_comment`` delivery to completion.

        ``api_factory`` is only awaited once the comment is known to be a
        benchmark request, so ignored comments cost no GitHub API calls.
        Returns the final state, ``done`` or ``aborted``.
        """
        try:
            event = TriggerEvent.from_payload(payload)
        except pydantic.ValidationError:
            logger.error("Malformed issue_comment payload", exc_info=True)
            webhook_skipped_counter.labels(event="issue_comment").inc()
            return DispatchState.aborted

        dispatch = Dispatch(event)
        try:
            await self._run(dispatch, api_factory)
        except Exception as e:
            error_counter.labels(context="dispatch").inc()
            log_fatal(
                "Caught exception in issue_comment handler", e, payload=dict(payload)
            )
            await self._report_exception(dispatch, e)
            dispatch.transition(DispatchState.aborted)

        return dispatch.state

    async def _report_exception(self, dispatch: Dispatch, error: Exception) -> None:
        if dispatch.sink is None:
            return
        body = render_exception(error)
        try:
            if dispatch.comment_id is not None:
                await dispatch.sink.update(dispatch.comment_id, body)
            else:
                await dispatch.sink.create(body)
        except Exception:
            error_counter.labels(context="exception_comment").inc()
            logger.error(
                "Unable to post exception comment on %s", dispatch.event, exc_info=True
            )

    async def _run(self, dispatch: Dispatch, api_factory: ApiFactory) -> None:
        event = dispatch.event

        dispatch.transition(DispatchState.filtering)
        if not is_applicable(event):
            webhook_skipped_counter.labels(event="issue_comment").inc()
            dispatch.transition(DispatchState.aborted)
            return

        command = parse_command(event.body)
        logger.info(
            "Benchmark requested on %s: action=%r extra=%r",
            event,
            command.action,
            command.extra,
        )

        dispatch.transition(DispatchState.validating)
        api = await api_factory(event.installation_id)
        dispatch.sink = self.sink_factory(api, event)
        try:
            get_push_domain = self.push_domain_factory(event.installation_id)
        except MissingInstallation as e:
            logger.error("%s: %s", event, e)
            await dispatch.abort(f"Error: {e}")
            return

        dispatch.transition(DispatchState.preflight)
        pr = await api.get_pull(event.owner, event.repo, event.number)
        contributor = pr.head.user.login
        branch = pr.head.ref
        logger.debug("branch: %s", branch)

        result = await self.runner.run(self.toolchain_command)
        if result.error is not None:
            logger.error("Toolchain query failed: %s", result.error)
            await dispatch.abort(
                "ERROR: Failed to query the currently active Rust toolchain"
            )
            return
        toolchain = result.stdout.strip()

        initial_info = (
            f"Starting benchmark for branch: {branch} (vs {self.base_branch})\n\n"
            f"Toolchain: \n{toolchain}\n\n Comment will be updated."
        )
        dispatch.comment_id = await dispatch.sink.create(initial_info)

        dispatch.transition(DispatchState.running)
        config = BenchConfig(
            owner=event.owner,
            contributor=contributor,
            repo=event.repo,
            branch=branch,
            base_branch=self.base_branch,
            action=command.action,
            extra=command.extra,
            get_push_domain=get_push_domain,
        )
        kind = select_delegate(command.action)
        report = await self._invoke(kind, config)

        dispatch.transition(DispatchState.reporting)
        if report.is_error:
            logger.error(report.message)
            if report.error is not None:
                logger.error("%s", report.error)
            benchmark_counter.labels(delegate=kind.value, outcome="failure").inc()
            await dispatch.sink.update(
                dispatch.comment_id, render_failure(report, branch)
            )
            dispatch.transition(DispatchState.aborted)
            return

        benchmark_counter.labels(delegate=kind.value, outcome="success").inc()
        await dispatch.sink.update(dispatch.comment_id, render_success(report, branch))
        dispatch.transition(DispatchState.done)

    async def _invoke(self, kind: DelegateKind, config: BenchConfig):
        delegate = self.delegates[kind]
        logger.info("Invoking %s delegate for %s", kind.value, config.branch)

        start = time.monotonic()
        try:
            if self.delegate_timeout is None:
                report = await delegate.run(config)
            else:
                report = await asyncio.wait_for(
                    delegate.run(config), timeout=self.delegate_timeout
                )
        except asyncio.TimeoutError:
            report = FailureReport(
                "Benchmark did not finish within "
                f"{humanize.precisedelta(timedelta(seconds=self.delegate_timeout))}",
            )
        finally:
            elapsed = time.monotonic() - start
            benchmark_duration.labels(delegate=kind.value).observe(elapsed)

        logger.info(
            "%s delegate finished after %s",
            kind.value,
            humanize.precisedelta(timedelta(seconds=elapsed)),
        )
        return report

"""
Last-resort handling of defects that escape per-event handling.

The first defect observed logs through the fatal channel and terminates the
process with status 1. Any defect reported while that is in progress is
ignored, so there is at most one fatal record and one exit attempt.
"""
import asyncio
import logging
import os
import sys
import threading
from typing import Any, Callable, Optional

from benchbot.logger import logger as default_logger


class FaultIsolator:
    def __init__(
        self,
        logger: logging.Logger = default_logger,
        exit: Callable[[int], Any] = os._exit,
    ):
        self.logger = logger
        self._exit = exit
        self._lock = threading.Lock()
        self._terminating = False

    @property
    def terminating(self) -> bool:
        return self._terminating

    def _claim(self) -> bool:
        with self._lock:
            if self._terminating:
                return False
            self._terminating = True
            return True

    def handle(
        self, event: str, error: Optional[BaseException], origin: Any = None
    ) -> None:
        if not self._claim():
            return

        try:
            exc_info = (type(error), error, error.__traceback__) if error else None
            self.logger.critical(
                "Fatal %s (origin: %s), terminating", event, origin, exc_info=exc_info
            )
            for handler in self.logger.handlers:
                handler.flush()
        except Exception as log_error:
            sys.stderr.write(
                f"level=error event={event} error={error!r} origin={origin!r} "
                f"exception={log_error!r}\n"
            )
            sys.stderr.flush()

        self._exit(1)

    def _excepthook(self, exc_type, exc, tb) -> None:
        if exc is not None and exc.__traceback__ is None:
            exc = exc.with_traceback(tb)
        self.handle("uncaught_exception", exc, origin="main")

    def _threading_excepthook(self, args) -> None:
        self.handle("uncaught_exception", args.exc_value, origin=args.thread)

    def _loop_exception_handler(self, loop, context) -> None:
        if context.get("exception") is None:
            # resource warnings such as unclosed sessions carry no exception
            self.logger.warning("Event loop: %s", context.get("message"))
            return
        self.handle(
            "unhandled_rejection",
            context.get("exception"),
            origin=context.get("message"),
        )

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        sys.excepthook = self._excepthook
        threading.excepthook = self._threading_excepthook
        if loop is not None:
            loop.set_exception_handler(self._loop_exception_handler)

    def watch(self, task: "asyncio.Task") -> "asyncio.Task":
        """Route an exception escaping ``task`` into :meth:`handle`."""

        def done(task: "asyncio.Task") -> None:
            if task.cancelled():
                return
            error = task.exception()
            if error is not None:
                self.handle("unhandled_rejection", error, origin=task.get_name())

        task.add_done_callback(done)
        return task

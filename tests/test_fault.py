import asyncio
import logging
import sys
import threading

import pytest

from benchbot.fault import FaultIsolator


class ExitRecorder:
    def __init__(self):
        self.codes = []

    def __call__(self, code):
        self.codes.append(code)


def test_first_defect_logs_and_exits(caplog):
    exit = ExitRecorder()
    isolator = FaultIsolator(logger=logging.getLogger("benchbot.test"), exit=exit)

    with caplog.at_level(logging.CRITICAL, logger="benchbot.test"):
        isolator.handle("uncaught_exception", RuntimeError("bug"), origin="main")

    assert exit.codes == [1]
    assert isolator.terminating
    (record,) = caplog.records
    assert record.levelno == logging.CRITICAL
    assert record.exc_info[1].args == ("bug",)


def test_second_defect_is_ignored(caplog):
    exit = ExitRecorder()
    isolator = FaultIsolator(logger=logging.getLogger("benchbot.test"), exit=exit)

    with caplog.at_level(logging.CRITICAL, logger="benchbot.test"):
        isolator.handle("uncaught_exception", RuntimeError("first"))
        isolator.handle("unhandled_rejection", RuntimeError("second"))

    assert exit.codes == [1]
    assert len(caplog.records) == 1


def test_concurrent_defects_terminate_once():
    exit = ExitRecorder()
    isolator = FaultIsolator(logger=logging.getLogger("benchbot.test"), exit=exit)
    barrier = threading.Barrier(8)

    def report(i):
        barrier.wait()
        isolator.handle("uncaught_exception", RuntimeError(f"defect {i}"))

    threads = [threading.Thread(target=report, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert exit.codes == [1]


def test_logging_failure_falls_back_to_stderr(capsys):
    class BrokenLogger:
        handlers = []

        def critical(self, *args, **kwargs):
            raise OSError("log sink gone")

    exit = ExitRecorder()
    isolator = FaultIsolator(logger=BrokenLogger(), exit=exit)

    isolator.handle("uncaught_exception", RuntimeError("bug"))

    assert exit.codes == [1]
    err = capsys.readouterr().err
    assert "uncaught_exception" in err
    assert "log sink gone" in err


@pytest.mark.asyncio
async def test_watch_routes_task_exception():
    exit = ExitRecorder()
    isolator = FaultIsolator(logger=logging.getLogger("benchbot.test"), exit=exit)

    async def broken():
        raise RuntimeError("escaped")

    task = isolator.watch(asyncio.get_running_loop().create_task(broken()))
    with pytest.raises(RuntimeError):
        await task
    await asyncio.sleep(0)

    assert exit.codes == [1]


@pytest.mark.asyncio
async def test_watch_ignores_clean_tasks():
    exit = ExitRecorder()
    isolator = FaultIsolator(logger=logging.getLogger("benchbot.test"), exit=exit)

    async def fine():
        return 1

    task = isolator.watch(asyncio.get_running_loop().create_task(fine()))
    assert await task == 1
    await asyncio.sleep(0)

    assert exit.codes == []
    assert not isolator.terminating


@pytest.mark.asyncio
async def test_loop_exception_handler():
    exit = ExitRecorder()
    isolator = FaultIsolator(logger=logging.getLogger("benchbot.test"), exit=exit)
    loop = asyncio.get_running_loop()
    previous = loop.get_exception_handler(), sys.excepthook, threading.excepthook
    try:
        isolator.install(loop)
        assert sys.excepthook == isolator._excepthook
        loop.call_exception_handler(
            {
                "message": "Task exception was never retrieved",
                "exception": KeyError("x"),
            }
        )
    finally:
        loop.set_exception_handler(previous[0])
        sys.excepthook = previous[1]
        threading.excepthook = previous[2]

    assert exit.codes == [1]


@pytest.mark.asyncio
async def test_loop_warning_without_exception_does_not_exit(caplog):
    exit = ExitRecorder()
    isolator = FaultIsolator(logger=logging.getLogger("benchbot.test"), exit=exit)
    loop = asyncio.get_running_loop()
    previous = loop.get_exception_handler(), sys.excepthook, threading.excepthook
    try:
        isolator.install(loop)
        with caplog.at_level(logging.WARNING, logger="benchbot.test"):
            loop.call_exception_handler({"message": "Unclosed client session"})
    finally:
        loop.set_exception_handler(previous[0])
        sys.excepthook = previous[1]
        threading.excepthook = previous[2]

    assert exit.codes == []
    assert not isolator.terminating
    (record,) = caplog.records
    assert record.levelno == logging.WARNING
    assert "Unclosed client session" in record.getMessage()

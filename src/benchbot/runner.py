import asyncio
from dataclasses import dataclass
import logging
import re
from pathlib import Path
from typing import Mapping, Optional, Union

logger = logging.getLogger("benchbot")

_CREDENTIALS = re.compile(r"(x-access-token:)[^@\s]+@")


def mask_credentials(text: str) -> str:
    return _CREDENTIALS.sub(r"\1***@", text)


class CommandFailed(Exception):
    def __init__(self, command: str, returncode: int, stderr: str):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"`{mask_credentials(command)}` exited with status {returncode}: "
            f"{mask_credentials(stderr)}"
        )


@dataclass(frozen=True)
class RunResult:
    command: str
    stdout: str
    stderr: str
    returncode: int
    error: Optional[Exception] = None


class Runner:
    """Runs shell commands, reporting failures as values instead of raising."""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        self.env = dict(env) if env is not None else None

    async def run(
        self, command: str, cwd: Optional[Union[str, Path]] = None
    ) -> RunResult:
        logger.debug("Running `%s` in %s", mask_credentials(command), cwd or ".")
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                cwd=cwd,
                env=self.env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Failed to spawn `%s`: %s", mask_credentials(command), e)
            return RunResult(command, "", "", -1, error=e)

        stdout, stderr = await proc.communicate()
        stdout = stdout.decode(errors="replace")
        stderr = stderr.decode(errors="replace")

        error = None
        if proc.returncode != 0:
            logger.debug(
                "`%s` failed with status %d", mask_credentials(command), proc.returncode
            )
            error = CommandFailed(command, proc.returncode, stderr.strip())

        return RunResult(command, stdout, stderr, proc.returncode, error=error)

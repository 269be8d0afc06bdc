import logging
from typing import Callable, Optional, Protocol

from benchbot.github.api import API
from benchbot.metric import comment_counter
from benchbot.model import TriggerEvent

logger = logging.getLogger("benchbot")


class CommentSink(Protocol):
    async def create(self, body: str) -> Optional[int]:
        ...

    async def update(self, comment_id: Optional[int], body: str) -> None:
        ...


class GitHubCommentSink:
    def __init__(self, api: API, event: TriggerEvent):
        self.api = api
        self.event = event

    async def create(self, body: str) -> Optional[int]:
        comment = await self.api.create_comment(
            self.event.owner, self.event.repo, self.event.number, body
        )
        comment_counter.labels(operation="create").inc()
        return comment.id

    async def update(self, comment_id: Optional[int], body: str) -> None:
        if comment_id is None:
            await self.create(body)
            return
        await self.api.update_comment(
            self.event.owner, self.event.repo, comment_id, body
        )
        comment_counter.labels(operation="update").inc()


class LogCommentSink:
    """Writes comment bodies to the log, never touching GitHub."""

    def __init__(self, event: TriggerEvent, log: logging.Logger = logger):
        self.event = event
        self.log = log

    async def create(self, body: str) -> Optional[int]:
        self.log.info("Comment on %s:\n%s", self.event, body)
        return None

    async def update(self, comment_id: Optional[int], body: str) -> None:
        self.log.info("Comment update on %s:\n%s", self.event, body)


SinkFactory = Callable[[API, TriggerEvent], CommentSink]


def make_sink_factory(debug: bool) -> SinkFactory:
    if debug:
        logger.info("Running in debug mode, comments are written to the log")
        return lambda api, event: LogCommentSink(event)
    return GitHubCommentSink

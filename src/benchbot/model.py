from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional

from benchbot.github.model import IssueCommentEvent


@dataclass(frozen=True)
class TriggerEvent:
    owner: str
    repo: str
    number: int
    body: str
    installation_id: Optional[int]
    action: str
    is_pull_request: bool

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TriggerEvent":
        event = IssueCommentEvent.model_validate(payload)
        return cls(
            owner=event.repository.owner.login,
            repo=event.repository.name,
            number=event.issue.number,
            body=event.comment.body,
            installation_id=event.installation.id
            if event.installation is not None
            else None,
            action=event.action,
            is_pull_request=event.issue.is_pull_request,
        )

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"


@dataclass(frozen=True)
class BenchConfig:
    owner: str
    contributor: str
    repo: str
    branch: str
    base_branch: str
    action: str
    extra: str
    # returns a fresh PushDomain on every call
    get_push_domain: Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class SuccessReport:
    title: str
    output: str
    extra_info: str
    bench_command: str

    is_error = False


@dataclass(frozen=True)
class FailureReport:
    message: str
    error: Optional[BaseException] = None

    is_error = True

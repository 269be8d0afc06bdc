from typing import Any, Dict, Optional

import pydantic


class Model(pydantic.BaseModel):
    pass


class User(Model):
    login: str


class Repository(Model):
    name: str
    owner: User
    full_name: Optional[str] = None
    url: Optional[str] = None
    html_url: Optional[str] = None
    private: Optional[bool] = None


class Installation(Model):
    id: int


class Issue(Model):
    number: int
    pull_request: Optional[Dict[str, Any]] = None

    @property
    def is_pull_request(self) -> bool:
        return self.pull_request is not None


class IssueComment(Model):
    id: int
    body: str = ""
    user: Optional[User] = None
    html_url: Optional[str] = None


class IssueCommentEvent(Model):
    action: str
    issue: Issue
    comment: IssueComment
    repository: Repository
    installation: Optional[Installation] = None


class PrConnection(Model):
    ref: str
    sha: str
    user: User
    label: Optional[str] = None


class PullRequest(Model):
    id: int
    number: int
    url: str
    head: PrConnection
    base: PrConnection
    html_url: Optional[str] = None

    def __str__(self) -> str:
        return f"PR(#{self.number}, {self.head.ref})"

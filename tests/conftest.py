from types import SimpleNamespace

from benchbot.github.model import IssueComment, PrConnection, PullRequest, User


def make_payload(
    body: str = "/bench runtime pallet_balances",
    action: str = "created",
    pull_request: bool = True,
    installation_id=99,
):
    payload = {
        "action": action,
        "issue": {"number": 42},
        "comment": {"id": 1, "body": body, "user": {"login": "reviewer"}},
        "repository": {
            "name": "repo",
            "full_name": "org/repo",
            "owner": {"login": "org"},
        },
    }
    if pull_request:
        payload["issue"]["pull_request"] = {
            "url": "https://api.github.com/repos/org/repo/pulls/42"
        }
    if installation_id is not None:
        payload["installation"] = {"id": installation_id}
    return payload


class FakeAPI:
    def __init__(self, branch: str = "feature", contributor: str = "alice"):
        self.calls = []
        self.branch = branch
        self.contributor = contributor
        self._next_id = 1000

    async def get_pull(self, owner, repo, number):
        self.calls.append(("get_pull", owner, repo, number))
        head = PrConnection(
            ref=self.branch, sha="a" * 40, user=User(login=self.contributor)
        )
        base = PrConnection(ref="master", sha="b" * 40, user=User(login=owner))
        return PullRequest(
            id=7,
            number=number,
            url=f"/repos/{owner}/{repo}/pulls/{number}",
            head=head,
            base=base,
        )

    async def create_comment(self, owner, repo, number, body):
        self._next_id += 1
        self.calls.append(("create_comment", number, body))
        return IssueComment(id=self._next_id, body=body)

    async def update_comment(self, owner, repo, comment_id, body):
        self.calls.append(("update_comment", comment_id, body))

    def bodies(self, kind):
        return [call[-1] for call in self.calls if call[0] == kind]


class FakeRunner:
    def __init__(self, stdout="stable-x86_64-unknown-linux-gnu\n", error=None):
        self.commands = []
        self.stdout = stdout
        self.error = error

    async def run(self, command, cwd=None):
        self.commands.append(command)
        return SimpleNamespace(
            command=command,
            stdout=self.stdout,
            stderr="",
            returncode=0 if self.error is None else 1,
            error=self.error,
        )

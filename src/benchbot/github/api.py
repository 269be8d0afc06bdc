from gidgethub.abc import GitHubAPI

from benchbot.github.model import IssueComment, PullRequest
from benchbot.metric import api_call_count

from sanic.log import logger


class API:
    gh: GitHubAPI
    installation: int

    call_count: int

    def __init__(self, gh: GitHubAPI, installation: int):
        self.gh = gh
        self.installation = installation
        self.call_count = 0

    def _count(self) -> None:
        self.call_count += 1
        api_call_count.inc()

    async def get_pull(self, owner: str, repo: str, number: int) -> PullRequest:
        self._count()
        url = f"/repos/{owner}/{repo}/pulls/{number}"
        logger.debug("Get pull %s", url)
        item = await self.gh.getitem(url)
        return PullRequest.model_validate(item)

    async def create_comment(
        self, owner: str, repo: str, number: int, body: str
    ) -> IssueComment:
        self._count()
        url = f"/repos/{owner}/{repo}/issues/{number}/comments"
        logger.debug("Creating comment on %s", url)
        item = await self.gh.post(url, data={"body": body})
        return IssueComment.model_validate(item)

    async def update_comment(
        self, owner: str, repo: str, comment_id: int, body: str
    ) -> None:
        self._count()
        url = f"/repos/{owner}/{repo}/issues/comments/{comment_id}"
        logger.debug("Updating comment %d, %s", comment_id, url)
        await self.gh.patch(url, data={"body": body})

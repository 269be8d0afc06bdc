from typing import Any, MutableMapping, Optional

import aiocache
import aiohttp
from gidgethub import aiohttp as gh_aiohttp
from gidgethub.apps import get_installation_access_token
from gidgethub.routing import Router
from gidgethub.sansio import Event
from sanic.log import logger

from benchbot import config as app_config
from benchbot.github.api import API

__all__ = ["API", "get_access_token", "api_for_installation", "create_router"]


@aiocache.cached(ttl=app_config.ACCESS_TOKEN_TTL, key_builder=lambda fn, gh, id: id)
async def get_access_token(gh: gh_aiohttp.GitHubAPI, installation_id: int) -> str:
    logger.debug("Getting NEW installation access token for %d", installation_id)
    access_token_response = await get_installation_access_token(
        gh,
        installation_id=installation_id,
        app_id=app_config.GITHUB_APP_ID,
        private_key=app_config.GITHUB_PRIVATE_KEY,
    )

    token = access_token_response["token"]
    return token


async def api_for_installation(
    session: aiohttp.ClientSession,
    installation_id: Optional[int],
    cache: Optional[MutableMapping[Any, Any]] = None,
) -> API:
    gh_pre = gh_aiohttp.GitHubAPI(session, __name__)
    if not installation_id:
        logger.warning("No installation id, using an unauthenticated client")
        return API(gh_pre, None)

    token = await get_access_token(gh_pre, installation_id)

    gh = gh_aiohttp.GitHubAPI(session, __name__, oauth_token=token, cache=cache)
    return API(gh, installation_id)


def create_router():
    router = Router()

    @router.register("issue_comment")
    async def on_issue_comment(event: Event, dispatcher, api_factory):
        logger.debug("Received issue_comment event (%s)", event.data.get("action"))
        await dispatcher.handle(event.data, api_factory)

    return router

import asyncio
import functools
import json
import logging
from pathlib import Path

import typer
from gidgethub import aiohttp as gh_aiohttp
from gidgethub.sansio import Event
import aiohttp
import cachetools

from benchbot import config
from benchbot.delegate import make_delegates
from benchbot.dispatch import Dispatcher
from benchbot.fault import FaultIsolator
from benchbot.github import api_for_installation, create_router
from benchbot.logger import get_log_handlers
from benchbot.runner import Runner


logging.basicConfig(
    format="%(asctime)s %(name)s %(levelname)s - %(message)s", level=logging.INFO
)
logger = logging.getLogger("benchbot")

app = typer.Typer()
httpcache = cachetools.LRUCache(maxsize=500)


@app.callback()
def init():
    logging.getLogger().setLevel(config.OVERRIDE_LOGGING)
    logger.setLevel(config.OVERRIDE_LOGGING)
    get_log_handlers(logger)
    config.check_required()


@app.command()
def serve(host: str = "0.0.0.0", port: int = 8000):
    from benchbot.web import create_app

    create_app().run(host=host, port=port, single_process=True)


@app.command()
def replay(payload: Path = typer.Argument(..., exists=True, dir_okay=False)):
    """Feed a saved issue_comment payload through the pipeline once."""

    async def handle():
        FaultIsolator().install(asyncio.get_running_loop())

        async with aiohttp.ClientSession() as session:
            gh = gh_aiohttp.GitHubAPI(session, __name__)
            runner = Runner()
            dispatcher = Dispatcher.from_config(gh, make_delegates(runner), runner)
            api_factory = functools.partial(
                api_for_installation, session, cache=httpcache
            )

            event = Event(
                json.loads(payload.read_text()),
                event="issue_comment",
                delivery_id="replay",
            )
            await create_router().dispatch(event, dispatcher, api_factory)

    asyncio.run(handle())

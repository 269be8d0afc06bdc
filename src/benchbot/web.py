import asyncio
import functools
import json
import logging
from pathlib import Path

from sanic import Sanic, response, Request
import aiohttp
from gidgethub import BadRequest, ValidationFailure, sansio
from gidgethub import aiohttp as gh_aiohttp
from sanic.log import logger
import sanic.log
import cachetools
from prometheus_client import core
from prometheus_client.exposition import generate_latest

from benchbot import config
from benchbot.delegate import make_delegates
from benchbot.dispatch import Dispatcher
from benchbot.fault import FaultIsolator
from benchbot.github import api_for_installation, create_router
from benchbot.logger import get_log_handlers
from benchbot.metric import request_counter, webhook_counter, webhook_skipped_counter
from benchbot.runner import Runner


logging.basicConfig(
    format="%(asctime)s %(name)s %(levelname)s - %(message)s", level=logging.INFO
)

HANDLED_EVENTS = ("issue_comment",)


def process_github_event(app, event: sansio.Event) -> "asyncio.Task | None":
    """Start handling ``event`` in its own task, returning that task if any."""
    webhook_counter.labels(event=event.event).inc()

    if event.event not in HANDLED_EVENTS:
        webhook_skipped_counter.labels(event=event.event).inc()
        return None

    api_factory = functools.partial(
        api_for_installation, app.ctx.aiohttp_session, cache=app.ctx.cache
    )

    logger.debug("Dispatching event %s", event.event)
    task = asyncio.get_running_loop().create_task(
        app.ctx.github_router.dispatch(event, app.ctx.dispatcher, api_factory),
        name=f"{event.event}-{event.delivery_id}",
    )
    app.ctx.tasks.add(task)
    task.add_done_callback(app.ctx.tasks.discard)
    app.ctx.fault_isolator.watch(task)
    return task


def replay_payload(app, path: Path):
    logger.info("Replaying payload from %s", path)
    data = json.loads(path.read_text())
    event = sansio.Event(data, event="issue_comment", delivery_id="replay")
    return process_github_event(app, event)


async def shutdown(app) -> None:
    if app.ctx.tasks:
        logger.info("Waiting for %d running deliveries", len(app.ctx.tasks))
        await asyncio.gather(*app.ctx.tasks, return_exceptions=True)
    await app.ctx.aiohttp_session.close()


def create_app():
    config.check_required()

    app = Sanic("benchbot")
    app.update_config(config)

    logging.getLogger().setLevel(config.OVERRIDE_LOGGING)
    logging.getLogger("benchbot").setLevel(config.OVERRIDE_LOGGING)

    sanic.log.logger.handlers = []

    for handler in get_log_handlers(logging.getLogger("benchbot")):
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s - %(message)s")
        )

    app.ctx.cache = cachetools.LRUCache(maxsize=500)
    app.ctx.github_router = create_router()
    app.ctx.tasks = set()
    app.ctx.fault_isolator = FaultIsolator()

    @app.listener("before_server_start")
    async def init(app, loop):
        app.ctx.fault_isolator.install(loop)

        logger.debug("Creating aiohttp session")
        app.ctx.aiohttp_session = aiohttp.ClientSession()

        gh = gh_aiohttp.GitHubAPI(app.ctx.aiohttp_session, __name__)
        runner = Runner()
        app.ctx.dispatcher = Dispatcher.from_config(gh, make_delegates(runner), runner)

    @app.listener("after_server_start")
    async def replay(app, loop):
        path = Path(config.PAYLOAD_PATH)
        if path.exists():
            replay_payload(app, path)

    @app.listener("before_server_stop")
    async def close(app, loop):
        await shutdown(app)

    @app.on_request
    async def on_request(request: Request):
        if request.path == "/metrics":
            return
        request_counter.labels(path=request.path).inc()

    @app.get("/status")
    async def status(request):
        logger.debug("status check")
        return response.text("ok")

    @app.route("/webhook", methods=["POST"])
    async def github(request):
        logger.debug("Webhook received")

        try:
            event = sansio.Event.from_http(
                request.headers, request.body, secret=app.config.GITHUB_WEBHOOK_SECRET
            )
        except ValidationFailure as e:
            logger.warning("Rejected webhook delivery: %s", e)
            return response.empty(400)
        except BadRequest as e:
            logger.warning("Rejected webhook delivery: %s", e)
            return response.empty(e.status_code.value)

        process_github_event(app, event)

        return response.empty(200)

    @app.get("/metrics")
    async def metrics(request):
        data = generate_latest(core.REGISTRY)
        return response.raw(data)

    return app

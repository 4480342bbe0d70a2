import logging

from sanic import Sanic, response, Request
import aiohttp
from gidgethub import sansio
from gidgethub import aiohttp as gh_aiohttp
from sanic.log import logger
import sanic.log
import cachetools
from prometheus_client import core
from prometheus_client.exposition import generate_latest

from review_sentinel import config
from review_sentinel.exceptions import LookupFailure
from review_sentinel.github import (
    ReviewTrigger,
    SUPPORTED_ACTIONS,
    create_router,
    get_access_token,
    handle_trigger,
)
from review_sentinel.github.api import API
from review_sentinel.logger import get_log_handlers
from review_sentinel.metric import (
    request_counter,
    webhook_counter,
    webhook_skipped_counter,
    error_counter,
)
from review_sentinel.scheduler import ReviewStatusScheduler


async def client_for_installation(app, installation_id):
    gh_pre = gh_aiohttp.GitHubAPI(app.ctx.aiohttp_session, __name__)
    token = await get_access_token(gh_pre, installation_id)

    return gh_aiohttp.GitHubAPI(
        app.ctx.aiohttp_session,
        __name__,
        oauth_token=token,
        cache=app.ctx.cache,
    )


async def process_trigger(app, trigger: ReviewTrigger) -> None:
    if trigger.installation_id is None:
        logger.warning(
            "No installation for %s (%s/%s), skipping",
            trigger.key,
            trigger.event,
            trigger.action,
        )
        webhook_skipped_counter.labels(
            event=trigger.event or "", action=trigger.action or ""
        ).inc()
        return

    logger.info("Processing %s (%s/%s)", trigger.key, trigger.event, trigger.action)
    try:
        gh = await client_for_installation(app, trigger.installation_id)
        api = API(gh, trigger.installation_id)
        result = await handle_trigger(
            trigger,
            api,
            codeowners_path=app.config.CODEOWNERS_PATH,
            is_author_permitted=config.is_author_permitted,
            dry_run=app.config.DRY_RUN,
        )
        logger.info("Finished %s: %s", trigger.key, result.result)
    except LookupFailure as e:
        error_counter.labels(context="team_lookup").inc()
        logger.warning("No comment posted on %s: %s", trigger.key, e, exc_info=True)
    except Exception:
        error_counter.labels(context="process_trigger").inc()
        logger.error("Exception raised when processing %s", trigger.key, exc_info=True)


logging.basicConfig(
    format="%(asctime)s %(name)s %(levelname)s - %(message)s", level=logging.INFO
)


def create_app():
    config.require("GITHUB_WEBHOOK_SECRET")
    config.require("GITHUB_APP_ID")
    config.require("GITHUB_PRIVATE_KEY")

    app = Sanic("review_sentinel")
    app.update_config(config)

    logging.getLogger().setLevel(config.OVERRIDE_LOGGING)

    sanic.log.logger.handlers = []

    for handler in get_log_handlers(sanic.log.logger):
        if len(logging.getLogger().handlers) > 0:
            handler.setFormatter(logging.getLogger().handlers[0].formatter)

    app.ctx.cache = cachetools.LRUCache(maxsize=500)
    app.ctx.github_router = create_router()

    @app.listener("before_server_start")
    async def init(app, loop):
        logger.debug("Creating aiohttp session")
        app.ctx.aiohttp_session = aiohttp.ClientSession()

        async def handler(trigger: ReviewTrigger):
            await process_trigger(app, trigger)

        app.ctx.scheduler = ReviewStatusScheduler(
            debounce_seconds=app.config.DEBOUNCE_SECONDS, handler=handler
        )

    @app.listener("after_server_stop")
    async def close(app, loop):
        await app.ctx.scheduler.shutdown()
        await app.ctx.aiohttp_session.close()

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

        event = sansio.Event.from_http(
            request.headers, request.body, secret=app.config.GITHUB_WEBHOOK_SECRET
        )

        webhook_counter.labels(event=event.event).inc()

        if event.event not in SUPPORTED_ACTIONS:
            webhook_skipped_counter.labels(
                event=event.event, action=event.data.get("action") or ""
            ).inc()
            return response.empty(200)

        logger.debug("Dispatching event %s", event.event)
        try:
            await app.ctx.github_router.dispatch(
                event, app.ctx.scheduler, delivery_id=event.delivery_id
            )
        except Exception:
            error_counter.labels(context="event_dispatch").inc()
            logger.error("Exception raised when dispatching event", exc_info=True)

        return response.empty(200)

    @app.get("/metrics")
    async def metrics(request):
        data = generate_latest(core.REGISTRY)
        return response.raw(data)

    return app

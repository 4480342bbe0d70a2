import asyncio
from contextlib import asynccontextmanager
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

import typer
from gidgethub import aiohttp as gh_aiohttp
import aiohttp
import cachetools

from review_sentinel import config
from review_sentinel.codeowners import get_file_owners, parse_codeowners
from review_sentinel.exceptions import MissingConfiguration, UnsupportedTrigger
from review_sentinel.github import (
    ReviewTrigger,
    get_access_token,
    handle_trigger,
    trigger_from_event,
)
from review_sentinel.github.api import API
from review_sentinel.logger import get_log_handlers


logging.basicConfig(
    format="%(asctime)s %(name)s %(levelname)s - %(message)s", level=logging.INFO
)
logger = logging.getLogger("review_sentinel")

app = typer.Typer()
httpcache = cachetools.LRUCache(maxsize=500)


@app.callback()
def init():
    logging.getLogger().setLevel(config.OVERRIDE_LOGGING)
    logger.setLevel(config.OVERRIDE_LOGGING)
    get_log_handlers(logger)


@asynccontextmanager
async def installation_client(installation: int):
    async with aiohttp.ClientSession() as session:
        gh = gh_aiohttp.GitHubAPI(session, __name__)

        token = await get_access_token(gh, installation)

        gh = gh_aiohttp.GitHubAPI(
            session,
            __name__,
            oauth_token=token,
            cache=httpcache,
        )

        yield gh


@asynccontextmanager
async def token_client(token: str):
    async with aiohttp.ClientSession() as session:
        yield gh_aiohttp.GitHubAPI(
            session, __name__, oauth_token=token, cache=httpcache
        )


def load_event_trigger(event_name: Optional[str], event_path: Optional[str]) -> ReviewTrigger:
    if not event_name:
        raise MissingConfiguration("GITHUB_EVENT_NAME")
    if not event_path:
        raise MissingConfiguration("GITHUB_EVENT_PATH")
    with open(event_path, encoding="utf-8") as fh:
        payload = json.load(fh)
    # a workflow decides itself which PR activity types it runs on
    return trigger_from_event(event_name, payload, any_action=True)


@app.command()
def action(
    codeowners_path: str = typer.Option(
        config.CODEOWNERS_PATH, envvar="INPUT_CODEOWNERS_PATH"
    ),
    dry_run: bool = typer.Option(config.DRY_RUN),
):
    """Update the review status comment for the PR that triggered a workflow."""
    try:
        token = config.require("GITHUB_TOKEN")
        trigger = load_event_trigger(
            os.environ.get("GITHUB_EVENT_NAME"), os.environ.get("GITHUB_EVENT_PATH")
        )
    except (MissingConfiguration, UnsupportedTrigger) as e:
        logger.error("%s, exiting", e)
        raise typer.Exit(code=1)

    async def handle():
        async with token_client(token) as gh:
            result = await handle_trigger(
                trigger,
                API(gh),
                codeowners_path=codeowners_path,
                is_author_permitted=config.is_author_permitted,
                dry_run=dry_run,
            )
        logger.info("Result: %s", result.result)
        if dry_run and result.body is not None:
            typer.echo(result.body)

    asyncio.run(handle())


@app.command()
def pr(
    repo: str,
    number: int,
    installation: int,
    codeowners_path: str = typer.Option(config.CODEOWNERS_PATH),
    dry_run: bool = typer.Option(config.DRY_RUN),
):
    """Update the review status comment of a PR as the GitHub App."""

    async def handle():
        async with installation_client(installation) as gh:
            result = await handle_trigger(
                ReviewTrigger(
                    repo_full_name=repo, pr_number=number, installation_id=installation
                ),
                API(gh, installation),
                codeowners_path=codeowners_path,
                is_author_permitted=config.is_author_permitted,
                dry_run=dry_run,
            )
        logger.info("Result: %s", result.result)
        if dry_run and result.body is not None:
            typer.echo(result.body)

    asyncio.run(handle())


@app.command()
def owners(codeowners: Path, paths: List[str]):
    """Print the owners of each path according to a local CODEOWNERS file."""
    rules = parse_codeowners(codeowners.read_text(encoding="utf-8-sig"))
    for path in paths:
        file_owners = get_file_owners(rules, path)
        typer.echo(f"{path}: {', '.join(file_owners) or '(no owners)'}")

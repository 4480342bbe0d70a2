from dataclasses import dataclass
from itertools import chain
from typing import Callable, List, Mapping, Optional, Sequence, Tuple
import logging

import aiocache
from gidgethub import BadRequest
from gidgethub import aiohttp as gh_aiohttp
from gidgethub.apps import get_installation_access_token
from gidgethub.routing import Router
from gidgethub.sansio import Event
from sanic.log import logger

from review_sentinel import config as app_config
from review_sentinel.codeowners import (
    OwnershipRule,
    get_file_owners,
    parse_codeowners,
    team_tokens,
)
from review_sentinel.exceptions import UnsupportedTrigger
from review_sentinel.github.api import API
from review_sentinel.github.model import PullRequest, Repository
from review_sentinel.metric import comment_post_counter, webhook_skipped_counter
from review_sentinel.render import COMMENT_HEADER, create_comment_content
from review_sentinel.review import (
    FileUnderReview,
    determine_approvers,
    determine_reviewers,
)
from review_sentinel.teams import TeamCache, TeamLookup, expand_owners


SUPPORTED_ACTIONS: Mapping[str, Tuple[str, ...]] = {
    "pull_request": (
        "opened",
        "reopened",
        "synchronize",
        "ready_for_review",
        "review_requested",
        "review_request_removed",
        "edited",
    ),
    "pull_request_review": ("submitted", "edited", "dismissed"),
}


@dataclass(frozen=True)
class ReviewTrigger:
    repo_full_name: str
    pr_number: int
    installation_id: Optional[int] = None
    event: Optional[str] = None
    action: Optional[str] = None
    delivery_id: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.repo_full_name}#{self.pr_number}"

    @property
    def repo_url(self) -> str:
        return f"/repos/{self.repo_full_name}"


@dataclass(frozen=True)
class ReviewResult:
    result: str
    body: Optional[str] = None
    comment_id: Optional[int] = None


def trigger_from_event(
    event: str,
    data: Mapping,
    delivery_id: Optional[str] = None,
    any_action: bool = False,
) -> ReviewTrigger:
    """
    Build the trigger for a PR event. Only the events in
    :data:`SUPPORTED_ACTIONS` are accepted. Their actions are restricted to the
    listed ones unless ``any_action`` is set.
    """
    action = data.get("action")
    if event not in SUPPORTED_ACTIONS:
        raise UnsupportedTrigger(event, action)
    if not any_action and action not in SUPPORTED_ACTIONS[event]:
        raise UnsupportedTrigger(event, action)

    installation_id = None
    if "installation" in data:
        installation_id = data["installation"]["id"]

    return ReviewTrigger(
        repo_full_name=data["repository"]["full_name"],
        pr_number=data["pull_request"]["number"],
        installation_id=installation_id,
        event=event,
        action=action,
        delivery_id=delivery_id,
    )


@aiocache.cached(ttl=app_config.ACCESS_TOKEN_TTL, key_builder=lambda fn, gh, id: id)
async def get_access_token(gh: gh_aiohttp.GitHubAPI, installation_id: int) -> str:
    logger.debug("Getting NEW installation access token for %d", installation_id)
    access_token_response = await get_installation_access_token(
        gh,
        installation_id=installation_id,
        app_id=app_config.require("GITHUB_APP_ID"),
        private_key=app_config.require("GITHUB_PRIVATE_KEY"),
    )

    token = access_token_response["token"]
    return token


async def get_codeowners_from_repo(
    api: API, repo: Repository, path: str
) -> Optional[List[OwnershipRule]]:
    try:
        content = await api.get_content(repo.url, path)
    except BadRequest as e:
        if e.status_code == 404:
            return None
        raise e

    if content.type != "file":
        raise ValueError(f"{path} is not a file")

    rules = parse_codeowners(content.decoded_content())
    logger.debug("Loaded %d ownership rules from %s", len(rules), path)
    return rules


def make_team_lookup(api: API) -> TeamLookup:
    async def lookup(team: str) -> List[str]:
        org, team_slug = team.split("/", 1)
        return await api.get_team_members(org, team_slug)

    return lookup


async def review_files(
    rules: Sequence[OwnershipRule],
    changed_files: Sequence[str],
    teams: TeamCache,
    approvers: frozenset,
    reviewers: frozenset,
) -> List[FileUnderReview]:
    file_owners = [(path, get_file_owners(rules, path)) for path in changed_files]

    await teams.prefetch(team_tokens(chain(*(owners for _, owners in file_owners))))

    files = []
    for path, owners in file_owners:
        expanded = await expand_owners(owners, teams)
        logger.debug("- %s: %s", path, ", ".join(expanded) or "no owners")
        files.append(
            FileUnderReview(
                path=path, owners=expanded, approvers=approvers, reviewers=reviewers
            )
        )
    return files


async def process_pull_request(
    pr: PullRequest,
    api: API,
    *,
    codeowners_path: Optional[str] = None,
    is_author_permitted: Optional[Callable[[str], bool]] = None,
    dry_run: bool = False,
) -> ReviewResult:
    logger.info("Begin handling %s", pr)
    codeowners_path = codeowners_path or app_config.CODEOWNERS_PATH
    is_author_permitted = is_author_permitted or app_config.is_author_permitted

    author = pr.user.login
    logger.info("Author: %s", author)
    if not is_author_permitted(author):
        logger.info("PR author %s, skipping", author)
        return ReviewResult(result="skipped")

    rules = await get_codeowners_from_repo(api, pr.base.repo, codeowners_path)
    if rules is None:
        logger.info(
            "No %s on base repository, not reacting to this PR", codeowners_path
        )
        return ReviewResult(result="no_codeowners")

    changed_files = [f.filename async for f in api.get_pull_request_files(pr)]
    logger.info("Files: %s", ", ".join(changed_files))

    reviews = [r async for r in api.get_reviews(pr)]
    requested = await api.get_requested_reviewers(pr)

    teams = TeamCache(make_team_lookup(api))

    org = pr.base.repo.owner_login
    requested_teams = [f"{org}/{team.slug}" for team in requested.teams]
    await teams.prefetch(requested_teams)
    requested_team_members = [
        member for team in requested_teams for member in await teams.members(team)
    ]

    approvers = determine_approvers(reviews)
    reviewers = determine_reviewers(
        [user.login for user in requested.users], requested_team_members, reviews
    )
    logger.info("Approving reviewers: %s", ", ".join(sorted(approvers)))
    logger.debug("Reviewers: %s", ", ".join(sorted(reviewers)))

    files = await review_files(rules, changed_files, teams, approvers, reviewers)
    logger.debug("Team lookups: %d", teams.lookup_count)

    body = create_comment_content(files)

    logger.debug("Comment text")
    if logger.getEffectiveLevel() == logging.DEBUG:
        for line in body.splitlines():
            logger.debug("| %s", line)

    existing = await api.find_existing_comment(pr, COMMENT_HEADER)
    existing_id = existing.id if existing is not None else None

    if dry_run:
        logger.info("Dry run, not posting comment for %s", pr)
        comment_post_counter.labels(result="dry_run").inc()
        return ReviewResult(result="dry_run", body=body, comment_id=existing_id)

    if existing is not None:
        if existing.body == body:
            logger.info("Existing comment %d is up to date", existing.id)
            comment_post_counter.labels(result="unchanged").inc()
            return ReviewResult(result="unchanged", body=body, comment_id=existing.id)
        logger.info("Found existing comment, updating")
        await api.update_comment(pr.base.repo.url, existing.id, body)
        comment_post_counter.labels(result="updated").inc()
        result = ReviewResult(result="updated", body=body, comment_id=existing.id)
    else:
        logger.info("Did not find existing comment, creating new comment")
        comment = await api.create_comment(pr, body)
        comment_post_counter.labels(result="created").inc()
        result = ReviewResult(result="created", body=body, comment_id=comment.id)

    logger.info("Finished handling %s, API calls: %d", pr, api.call_count)
    return result


async def handle_trigger(trigger: ReviewTrigger, api: API, **kwargs) -> ReviewResult:
    pr = await api.get_pull(trigger.repo_url, trigger.pr_number)
    return await process_pull_request(pr, api, **kwargs)


def create_router():
    router = Router()

    async def enqueue(event: Event, scheduler, delivery_id: Optional[str] = None):
        try:
            trigger = trigger_from_event(event.event, event.data, delivery_id)
        except UnsupportedTrigger as e:
            logger.debug("Skipping: %s", e)
            webhook_skipped_counter.labels(
                event=e.event, action=e.action or ""
            ).inc()
            return
        logger.debug(
            "Received %s/%s event on %s", trigger.event, trigger.action, trigger.key
        )
        await scheduler.enqueue(trigger)

    @router.register("pull_request")
    async def on_pr(event: Event, scheduler, delivery_id: Optional[str] = None):
        await enqueue(event, scheduler, delivery_id)

    @router.register("pull_request_review")
    async def on_pr_review(event: Event, scheduler, delivery_id: Optional[str] = None):
        await enqueue(event, scheduler, delivery_id)

    return router

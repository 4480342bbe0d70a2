from typing import AsyncIterator, List, Optional
from gidgethub import BadRequest
from gidgethub.abc import GitHubAPI

from review_sentinel.exceptions import LookupFailure
from review_sentinel.github.model import (
    Content,
    IssueComment,
    PrFile,
    PullRequest,
    RequestedReviewers,
    Review,
)
from review_sentinel.metric import api_call_count

from sanic.log import logger


class API:
    gh: GitHubAPI
    installation: Optional[int]

    call_count: int

    def __init__(self, gh: GitHubAPI, installation: Optional[int] = None):
        self.gh = gh
        self.installation = installation
        self.call_count = 0

    def _record_call(self) -> None:
        self.call_count += 1
        api_call_count.inc()

    async def get_content(self, repo_url: str, path: str) -> Content:
        self._record_call()
        url = f"{repo_url}/contents/{path}"
        logger.debug("Get file content: %s", url)
        return Content.model_validate(await self.gh.getitem(url))

    async def get_pull(self, repo_url: str, number: int) -> PullRequest:
        self._record_call()
        url = f"{repo_url}/pulls/{number}"
        logger.debug("Get pull %s", url)
        return PullRequest.model_validate(await self.gh.getitem(url))

    async def get_pull_request_files(self, pr: PullRequest) -> AsyncIterator[PrFile]:
        self._record_call()
        url = f"{pr.base.repo.url}/pulls/{pr.number}/files"
        logger.debug("Getting files for PR #%d %s", pr.number, url)
        async for item in self.gh.getiter(url):
            yield PrFile.model_validate(item)

    async def get_reviews(self, pr: PullRequest) -> AsyncIterator[Review]:
        self._record_call()
        url = f"{pr.base.repo.url}/pulls/{pr.number}/reviews"
        logger.debug("Getting reviews for PR #%d %s", pr.number, url)
        async for item in self.gh.getiter(url):
            yield Review.model_validate(item)

    async def get_requested_reviewers(self, pr: PullRequest) -> RequestedReviewers:
        self._record_call()
        url = f"{pr.base.repo.url}/pulls/{pr.number}/requested_reviewers"
        logger.debug("Getting requested reviewers for PR #%d %s", pr.number, url)
        return RequestedReviewers.model_validate(await self.gh.getitem(url))

    async def get_team_members(self, org: str, team_slug: str) -> List[str]:
        self._record_call()
        url = f"/orgs/{org}/teams/{team_slug}/members"
        logger.debug("Getting members of %s/%s: %s", org, team_slug, url)
        try:
            return [item["login"] async for item in self.gh.getiter(url)]
        except BadRequest as e:
            raise LookupFailure(f"{org}/{team_slug}", str(e)) from e

    async def find_existing_comment(
        self, pr: PullRequest, marker: str
    ) -> Optional[IssueComment]:
        self._record_call()
        url = f"{pr.base.repo.url}/issues/{pr.number}/comments"
        logger.debug("Looking for existing comment on PR #%d %s", pr.number, url)
        async for item in self.gh.getiter(url):
            comment = IssueComment.model_validate(item)
            if comment.body is not None and marker in comment.body:
                return comment
        return None

    async def create_comment(self, pr: PullRequest, body: str) -> IssueComment:
        self._record_call()
        url = f"{pr.base.repo.url}/issues/{pr.number}/comments"
        logger.debug("Creating comment on PR #%d %s", pr.number, url)
        return IssueComment.model_validate(
            await self.gh.post(url, data={"body": body})
        )

    async def update_comment(
        self, repo_url: str, comment_id: int, body: str
    ) -> IssueComment:
        self._record_call()
        url = f"{repo_url}/issues/comments/{comment_id}"
        logger.debug("Updating comment %d, %s", comment_id, url)
        return IssueComment.model_validate(
            await self.gh.patch(url, data={"body": body})
        )

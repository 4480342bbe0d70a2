from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, AbstractSet, Dict, FrozenSet, Iterable, Sequence, Tuple

if TYPE_CHECKING:
    from review_sentinel.github.model import Review


APPROVED = "APPROVED"

# Review states that replace a user's previous verdict
DECISIVE_REVIEW_STATES = frozenset({"APPROVED", "CHANGES_REQUESTED", "DISMISSED"})


class ApprovalState(Enum):
    # File does not need approval as it has no owners
    NoOwners = 1
    # File has been approved by at least one owner
    Approved = 2
    # File has not been approved yet, but a reviewer can approve it
    Pending = 3
    # None of the current reviewers can approve the file
    Unapprovable = 4


def classify(
    owners: AbstractSet[str], approvers: AbstractSet[str], reviewers: AbstractSet[str]
) -> ApprovalState:
    if len(owners) == 0:
        return ApprovalState.NoOwners

    # checked before approvals: an approval from somebody who is no longer
    # reviewing does not unblock the file
    if owners.isdisjoint(reviewers):
        return ApprovalState.Unapprovable

    if not owners.isdisjoint(approvers):
        return ApprovalState.Approved

    return ApprovalState.Pending


@dataclass(frozen=True)
class FileUnderReview:
    path: str
    owners: Tuple[str, ...]
    approvers: FrozenSet[str] = frozenset()
    reviewers: FrozenSet[str] = frozenset()
    approval: ApprovalState = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "owners", tuple(dict.fromkeys(self.owners)))
        object.__setattr__(self, "approvers", frozenset(self.approvers))
        object.__setattr__(self, "reviewers", frozenset(self.reviewers))
        object.__setattr__(
            self,
            "approval",
            classify(frozenset(self.owners), self.approvers, self.reviewers),
        )

    @property
    def needs_approval(self) -> bool:
        return self.approval in (ApprovalState.Pending, ApprovalState.Unapprovable)


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _submitted_at(review: Review) -> datetime:
    if review.submitted_at is None:
        return _EPOCH
    if review.submitted_at.tzinfo is None:
        return review.submitted_at.replace(tzinfo=timezone.utc)
    return review.submitted_at


def determine_approvers(reviews: Iterable[Review]) -> FrozenSet[str]:
    """
    Users whose latest approving, change-requesting or dismissed review is an
    approval. Comments never change a user's verdict.
    """
    verdicts: Dict[str, str] = {}
    for review in sorted(reviews, key=_submitted_at):
        if review.user is None:
            continue
        if review.state not in DECISIVE_REVIEW_STATES:
            continue
        verdicts[review.user.login] = review.state
    return frozenset(login for login, state in verdicts.items() if state == APPROVED)


def determine_reviewers(
    requested_users: Iterable[str],
    requested_team_members: Iterable[str],
    reviews: Sequence[Review],
) -> FrozenSet[str]:
    reviewers = set(requested_users)
    reviewers.update(requested_team_members)
    reviewers.update(r.user.login for r in reviews if r.user is not None)
    return frozenset(reviewers)

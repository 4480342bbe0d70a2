from datetime import datetime
from typing import List, Literal, Optional
import base64

import pydantic


class Model(pydantic.BaseModel):
    pass


class Content(Model):
    type: str
    encoding: Literal["base64"]
    size: int
    name: str
    path: str
    content: str
    sha: str
    url: str
    html_url: Optional[str] = None
    download_url: Optional[str] = None

    def decoded_content(self) -> str:
        if self.encoding != "base64":
            raise ValueError(f"Unknown encoding {self.encoding}")
        return base64.b64decode(self.content).decode("utf-8-sig")


class User(Model):
    login: str
    id: Optional[int] = None
    type: Optional[str] = None


class Team(Model):
    id: Optional[int] = None
    slug: str
    name: Optional[str] = None


class Repository(Model):
    id: int
    name: str
    full_name: Optional[str] = None
    url: str
    html_url: Optional[str] = None
    private: Optional[bool] = None
    owner: Optional[User] = None

    @property
    def owner_login(self) -> str:
        if self.owner is not None:
            return self.owner.login
        if self.full_name is not None:
            return self.full_name.split("/", 1)[0]
        raise ValueError(f"Unable to determine owner of repository {self.name}")


class PrConnection(Model):
    ref: str
    sha: str
    repo: Repository
    label: Optional[str] = None


class PullRequest(Model):
    url: str
    id: int
    number: int
    state: Literal["open", "closed"]
    user: User
    draft: Optional[bool] = None
    base: PrConnection
    head: PrConnection
    html_url: Optional[str] = None

    def __str__(self) -> str:
        name = self.base.repo.name
        if self.base.repo.full_name is not None:
            name = self.base.repo.full_name
        return f"PR({name}#{self.number}, {self.id})"


class PrFile(Model):
    sha: Optional[str] = None
    filename: str
    status: Literal[
        "added", "removed", "modified", "renamed", "copied", "changed", "unchanged"
    ]


class Review(Model):
    id: int
    # deleted accounts come back without a user
    user: Optional[User] = None
    state: str
    submitted_at: Optional[datetime] = None


class RequestedReviewers(Model):
    users: List[User] = pydantic.Field(default_factory=list)
    teams: List[Team] = pydantic.Field(default_factory=list)


class IssueComment(Model):
    id: int
    body: Optional[str] = None
    user: Optional[User] = None
    html_url: Optional[str] = None

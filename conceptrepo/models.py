from typing import Annotated, Literal

from pydantic import BaseModel, Field

INDEX_NAME_PATTERN = r"^[a-z][a-z0-9_-]*$"
RepoName = Annotated[str, Field(pattern=r"^[A-Za-z0-9_.-]+$", title="Repository owner or name")]


class StoredBlob(BaseModel):
    """A blob as read from the content store, with the revision token required to overwrite it."""

    path: str
    content: bytes
    revision: str


class TreeEntry(BaseModel):
    path: str
    kind: Literal["blob", "tree", "commit"]


class SearchHit(BaseModel):
    path: str
    score: float = 0.0


class SearchResults(BaseModel):
    total_count: int
    items: list[SearchHit]


class User(BaseModel):
    """For internal use only. Represents the user behind a bearer token, as reported by the host."""

    login: str
    id: int
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None

"""
Use the contents API of a GitHub repository as a content store.

A client is created per request with the caller's own access token, and closed when the request is done.
"""

import logging
from urllib.parse import quote

import httpx

from conceptrepo.config import get_settings
from conceptrepo.errors import ContentStoreError, Conflict, Forbidden, NotFound, RateLimited, Unauthorized, Unreachable
from conceptrepo.index.codec import decode_content, encode_content
from conceptrepo.models import SearchHit, SearchResults, StoredBlob, TreeEntry, User


def github_client(token: str | None) -> httpx.AsyncClient:
    settings = get_settings()
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": settings.github_api_version,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(base_url=settings.github_api_url, headers=headers, timeout=30)


def _message(response: httpx.Response) -> str:
    try:
        return response.json().get("message", response.text)
    except ValueError:
        return response.text


def raise_for_status(response: httpx.Response, path: str | None = None) -> None:
    """Translate an error response of the host into the matching ContentStoreError"""
    if response.is_success:
        return
    status = response.status_code
    message = _message(response)
    what = path or response.request.url.path

    if status == 404:
        raise NotFound(f"{what} not found", path)
    if status == 409 or (status == 422 and "sha" in message.lower()):
        raise Conflict(f"{what} was modified concurrently: {message}", path)
    if status == 429 or (status == 403 and response.headers.get("x-ratelimit-remaining") == "0"):
        retry_after = response.headers.get("retry-after")
        raise RateLimited(
            f"Rate limited by GitHub: {message}", path, retry_after=int(retry_after) if retry_after else None
        )
    if status == 403:
        raise Forbidden(f"Access to {what} denied: {message}", path)
    if status == 401:
        raise Unauthorized(f"GitHub rejected the access token: {message}", path)
    raise ContentStoreError(f"GitHub returned {status} for {what}: {message}", path)


async def send(client: httpx.AsyncClient, method: str, url: str, path: str | None = None, **kargs) -> httpx.Response:
    """Send a request to the host, raising a ContentStoreError if it fails or returns an error"""
    try:
        r = await client.request(method, url, **kargs)
    except httpx.TransportError as e:
        raise Unreachable(f"Could not reach GitHub for {path or url}: {e!r}", path) from e
    raise_for_status(r, path)
    return r


async def get_user(token: str) -> User:
    async with github_client(token) as client:
        r = await send(client, "GET", "/user")
        return User.model_validate(r.json())


class GitHubContentStore:
    """A ContentStore on top of one branch (or the default branch) of a repository"""

    def __init__(self, token: str | None, owner: str, repo: str, ref: str | None = None):
        self.owner = owner
        self.repo = repo
        self.ref = ref
        self.client = github_client(token)

    async def __aenter__(self) -> "GitHubContentStore":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{quote(path)}"

    async def get_content(self, path: str) -> StoredBlob:
        params = {"ref": self.ref} if self.ref else None
        r = await send(self.client, "GET", self._contents_url(path), path, params=params)
        data = r.json()
        if isinstance(data, list) or data.get("type") != "file":
            raise NotFound(f"{path} is not a file", path)
        if data.get("encoding") == "base64":
            content = decode_content(data.get("content", ""))
        else:
            # large files are not inlined, fetch them raw
            raw = await send(
                self.client,
                "GET",
                self._contents_url(path),
                path,
                params=params,
                headers={"Accept": "application/vnd.github.raw+json"},
            )
            content = raw.content
        return StoredBlob(path=path, content=content, revision=data["sha"])

    async def put_content(self, path: str, content: bytes, message: str, revision: str | None = None) -> str:
        body: dict = {"message": message, "content": encode_content(content)}
        if revision:
            body["sha"] = revision
        if self.ref:
            body["branch"] = self.ref
        r = await send(self.client, "PUT", self._contents_url(path), path, json=body)
        return r.json()["content"]["sha"]

    async def delete_content(self, path: str, revision: str, message: str) -> None:
        body: dict = {"message": message, "sha": revision}
        if self.ref:
            body["branch"] = self.ref
        await send(self.client, "DELETE", self._contents_url(path), path, json=body)

    async def default_branch(self) -> str:
        r = await send(self.client, "GET", f"/repos/{self.owner}/{self.repo}")
        return r.json()["default_branch"]

    async def list_tree(self, recursive: bool = True) -> list[TreeEntry]:
        ref = self.ref or await self.default_branch()
        params = {"recursive": "1"} if recursive else None
        url = f"/repos/{self.owner}/{self.repo}/git/trees/{quote(ref, safe='')}"
        r = await send(self.client, "GET", url, ref, params=params)
        data = r.json()
        if data.get("truncated"):
            logging.warning(f"Tree listing of {self.owner}/{self.repo}@{ref} was truncated by GitHub")
        return [TreeEntry(path=entry["path"], kind=entry["type"]) for entry in data.get("tree", [])]

    async def search_code(self, query: str, scope: str | None = None) -> SearchResults:
        q = f"{query} repo:{self.owner}/{self.repo}"
        if scope:
            q += f" path:{scope.strip('/')}"
        r = await send(self.client, "GET", "/search/code", params={"q": q})
        data = r.json()
        return SearchResults(
            total_count=data.get("total_count", 0),
            items=[SearchHit(path=item["path"], score=item.get("score", 0.0)) for item in data.get("items", [])],
        )

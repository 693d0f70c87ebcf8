"""API Endpoints and helpers for authentication with GitHub."""

import logging
from typing import Annotated, Any, AsyncIterator

from authlib.common.errors import AuthlibBaseError
from authlib.integrations.httpx_client import AsyncOAuth2Client
from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from conceptrepo.config import get_oauth_credentials, get_settings
from conceptrepo.github.client import GitHubContentStore, get_user
from conceptrepo.models import RepoName, User

app_auth = APIRouter(prefix="/auth", tags=["auth"])

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="GitHub access token")


class TokenBody(BaseModel):
    code: str = Field(description="The code GitHub passed to the redirect url")
    redirect_uri: str | None = Field(None, description="The redirect url used in the authorization request")


async def github_token(credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme)) -> str:
    """The caller's GitHub access token, passed on to GitHub as is"""
    if credentials is None or not credentials.credentials.strip():
        raise HTTPException(status_code=401, detail="This endpoint requires a GitHub access token as bearer token")
    return credentials.credentials.strip()


async def content_store(
    owner: Annotated[RepoName, Path(description="Owner of the repository")],
    repo: Annotated[RepoName, Path(description="Name of the repository")],
    token: Annotated[str, Depends(github_token)],
    ref: Annotated[str | None, Query(description="Branch to work on, defaults to the default branch")] = None,
) -> AsyncIterator[GitHubContentStore]:
    """A content store on the repository in the request path, open for the duration of the request"""
    async with GitHubContentStore(token, owner, repo, ref) as store:
        yield store


async def exchange_code(code: str, redirect_uri: str | None = None) -> dict[str, Any]:
    """Exchange an OAuth authorization code for an access token"""
    credentials = get_oauth_credentials()
    params = {"code": code}
    if redirect_uri:
        params["redirect_uri"] = redirect_uri
    async with AsyncOAuth2Client(
        client_id=credentials.client_id,
        client_secret=credentials.client_secret,
        token_endpoint_auth_method="client_secret_post",
    ) as client:
        token = await client.fetch_token(get_settings().github_oauth_url, **params)
    return dict(token)


@app_auth.post("/token")
async def access_token(body: Annotated[TokenBody, Body(...)]) -> dict[str, Any]:
    """
    Exchange the code from the GitHub OAuth flow for an access token.
    """
    try:
        return await exchange_code(body.code, body.redirect_uri)
    except AuthlibBaseError as e:
        logging.warning(f"OAuth code exchange failed: {e}")
        raise HTTPException(status_code=400, detail=f"Could not obtain access token: {e}") from e


@app_auth.get("/user")
async def current_user(token: Annotated[str, Depends(github_token)]) -> User:
    """
    The GitHub user the bearer token belongs to.
    """
    return await get_user(token)

"""API Endpoints for server information and configuration."""

from importlib.metadata import PackageNotFoundError, version

from fastapi import APIRouter
from pydantic import BaseModel, Field

from conceptrepo.config import get_settings, validate_settings

app_info = APIRouter(tags=["informational"])


# RESPONSE MODELS
class ConfigResponse(BaseModel):
    """Response for server configuration."""

    host: str = Field(..., description="The host this instance is served at.")
    github_api_url: str = Field(..., description="The GitHub API this instance talks to.")
    oauth_client_id: str | None = Field(None, description="Client id to use in the GitHub OAuth flow.")
    index_name: str = Field(..., description="The default index namespace.")
    warnings: list[str] = Field(..., description="A list of configuration warnings.")
    api_version: str = Field(..., description="The version of the API.")


def api_version() -> str:
    try:
        return version("conceptrepo")
    except PackageNotFoundError:
        return "unknown"


@app_info.get("/config")
def get_server_config() -> ConfigResponse:
    """Get the server configuration."""
    settings = get_settings()
    warning = validate_settings()
    return ConfigResponse(
        host=settings.host,
        github_api_url=settings.github_api_url,
        oauth_client_id=settings.github_client_id,
        index_name=settings.index_name,
        warnings=[warning] if warning else [],
        api_version=api_version(),
    )

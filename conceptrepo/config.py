"""
Concept repository configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the CONCEPTREPO_ENV_FILE environment variable
"""

import functools
from pathlib import Path
from typing import Annotated, NamedTuple

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from conceptrepo.errors import SecretNotConfigured
from conceptrepo.models import INDEX_NAME_PATTERN

ENV_PREFIX = "conceptrepo_"


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")
    host: Annotated[
        str,
        Field(
            description="Host this instance is served at",
        ),
    ] = "http://localhost:5000"

    github_api_url: Annotated[
        str,
        Field(description="Base URL of the GitHub REST API"),
    ] = "https://api.github.com"

    github_oauth_url: Annotated[
        str,
        Field(description="GitHub endpoint that exchanges an OAuth code for an access token"),
    ] = "https://github.com/login/oauth/access_token"

    github_api_version: Annotated[
        str,
        Field(description="Value of the X-GitHub-Api-Version header"),
    ] = "2022-11-28"

    github_client_id: Annotated[
        str | None,
        Field(description="OAuth app client id"),
    ] = None

    github_client_secret: Annotated[
        str | None,
        Field(description="OAuth app client secret"),
    ] = None

    index_name: Annotated[
        str,
        Field(
            pattern=INDEX_NAME_PATTERN,
            description="Default index namespace; the index is stored as <directory>/<index_name>.json",
        ),
    ] = "index"

    config_file: Annotated[
        str,
        Field(description="File name of the schema config, stored at the repository root"),
    ] = "config.json"

    object_suffix: Annotated[
        str,
        Field(description="Only files ending in this suffix are indexed as concepts"),
    ] = ".json"

    rebuild_batch_size: Annotated[
        int,
        Field(ge=1, description="Number of files fetched concurrently while rebuilding an index"),
    ] = 10

    id_allocation_attempts: Annotated[
        int,
        Field(ge=1, description="Maximum number of draws when allocating a concept identifier"),
    ] = 100

    allowed_origins: Annotated[
        list[str],
        Field(description="Origins allowed by the CORS middleware"),
    ] = ["*"]

    @model_validator(mode="after")
    def strip_urls(self) -> "Settings":
        self.github_api_url = self.github_api_url.rstrip("/")
        self.host = self.host.rstrip("/")
        return self

    @model_validator(mode="after")
    def index_is_not_config(self) -> "Settings":
        if f"{self.index_name}.json" == self.config_file:
            raise ValueError(f"index_name {self.index_name!r} would store indexes in the config file")
        return self

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)


@functools.lru_cache()
def get_settings() -> Settings:
    # Settings() alone does not pick up a .env file at a custom location, so load it explicitly
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


class OAuthCredentials(NamedTuple):
    client_id: str
    client_secret: str


def get_oauth_credentials() -> OAuthCredentials:
    """
    Look up the OAuth app credentials.

    raises SecretNotConfigured if either secret is missing
    """
    settings = get_settings()
    if not settings.github_client_id or not settings.github_client_secret:
        raise SecretNotConfigured(
            f"OAuth client is not configured, set {ENV_PREFIX.upper()}GITHUB_CLIENT_ID "
            f"and {ENV_PREFIX.upper()}GITHUB_CLIENT_SECRET"
        )
    return OAuthCredentials(settings.github_client_id, settings.github_client_secret)


def validate_settings():
    settings = get_settings()
    if not (settings.github_client_id and settings.github_client_secret):
        return "No OAuth client configured: the /auth/token endpoint will not be able to log users in"
    if settings.host.startswith("http://") and not settings.host.startswith("http://localhost"):
        return (
            "You have set the host at an http address. "
            "Access tokens will be sent over an unencrypted connection"
        )


if __name__ == "__main__":
    # Echo the settings
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")

"""API Endpoints for concepts, their indexes and the repository config."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Path, Query, status
from pydantic import BaseModel, Field, model_validator
from typing_extensions import Self

from conceptrepo.api.auth import content_store
from conceptrepo.concepts import (
    Concept,
    WriteResult,
    add_concept,
    delete_concept,
    fetch_concept,
    get_index,
    lookup,
    new_concept_id,
    read_config,
    search_concepts,
    update_concept,
    write_config,
)
from conceptrepo.github.client import GitHubContentStore
from conceptrepo.index.codec import decode_content, serialize_object
from conceptrepo.index.document import IndexDocument
from conceptrepo.index.rebuild import RebuildReport, rebuild_index
from conceptrepo.models import INDEX_NAME_PATTERN, SearchResults

app_concepts = APIRouter(prefix="/repos/{owner}/{repo}", tags=["concepts"])

Store = Annotated[GitHubContentStore, Depends(content_store)]
ConceptPath = Annotated[str, Path(description="Path of the concept file in the repository")]
IndexNameQuery = Annotated[
    str | None, Query(pattern=INDEX_NAME_PATTERN, description="Index namespace, defaults to the server setting")
]
DirectoryQuery = Annotated[str, Query(description="Directory in the repository, empty for the root")]


# REQUEST MODELS
class ConceptBody(BaseModel):
    """A concept to store, either as JSON object or base64 encoded."""

    content: dict[str, Any] | None = Field(None, description="The concept as JSON object")
    content_base64: str | None = Field(None, description="The concept file content, base64 encoded")
    message: str | None = Field(None, description="Commit message")
    revision: str | None = Field(
        None, description="Revision the change is based on. Updates fail with 409 if the file changed since."
    )

    @model_validator(mode="after")
    def one_content(self) -> Self:
        if (self.content is None) == (self.content_base64 is None):
            raise ValueError("Provide either content or content_base64")
        return self

    def content_bytes(self) -> bytes:
        if self.content_base64 is not None:
            return decode_content(self.content_base64)
        return serialize_object(self.content)


class DeleteBody(BaseModel):
    message: str | None = None
    revision: str | None = None


class ConfigBody(BaseModel):
    config: dict[str, Any] = Field(description="The schema config, stored as is")
    revision: str | None = Field(None, description="Revision of the current config, omit when creating it")
    message: str | None = None


# RESPONSE MODELS
class LookupResult(BaseModel):
    paths: list[str] = Field(description="Paths of the concepts matching the lookup")


class IdResult(BaseModel):
    id: int = Field(description="A free 9 digit identifier")


class ConfigResult(BaseModel):
    config: dict[str, Any]
    revision: str | None = Field(None, description="Revision of the stored config, null if this is the default")
    default: bool = Field(description="True if the repository has no config yet and this is the default schema")


@app_concepts.get("/concepts/{path:path}")
async def get_concept(store: Store, path: ConceptPath) -> Concept:
    """
    Get a concept and its revision.
    """
    return await fetch_concept(store, path)


@app_concepts.post("/concepts/{path:path}", status_code=status.HTTP_201_CREATED)
async def create_concept(
    store: Store,
    path: ConceptPath,
    body: Annotated[ConceptBody, Body(...)],
    index_name: IndexNameQuery = None,
) -> WriteResult:
    """
    Create a concept file and add it to the index of its directory. Fails with 409 if the file exists.
    """
    return await add_concept(store, path, body.content_bytes(), body.message, index_name)


@app_concepts.put("/concepts/{path:path}")
async def modify_concept(
    store: Store,
    path: ConceptPath,
    body: Annotated[ConceptBody, Body(...)],
    index_name: IndexNameQuery = None,
) -> WriteResult:
    """
    Overwrite a concept file and update the index of its directory.
    """
    return await update_concept(store, path, body.content_bytes(), body.message, body.revision, index_name)


@app_concepts.delete("/concepts/{path:path}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_concept(
    store: Store,
    path: ConceptPath,
    body: Annotated[DeleteBody | None, Body()] = None,
    index_name: IndexNameQuery = None,
):
    """
    Delete a concept file and remove it from the index of its directory.
    """
    body = body or DeleteBody()
    await delete_concept(store, path, body.message, body.revision, index_name)


@app_concepts.get("/index", response_model=None)
async def get_index_document(
    store: Store,
    directory: DirectoryQuery = "",
    key: Annotated[str | None, Query(description="Only concepts with this key")] = None,
    type: Annotated[str | None, Query(description="Only concepts of this object type")] = None,
    index_name: IndexNameQuery = None,
) -> dict[str, Any] | LookupResult:
    """
    Get the index of a directory, or, if key and/or type are given, the paths of the matching concepts.
    """
    if key is None and type is None:
        document: IndexDocument = await get_index(store, directory, index_name)
        return document.model_dump(mode="json", by_alias=True)
    return LookupResult(paths=await lookup(store, directory, key, type, index_name))


@app_concepts.post("/index/rebuild")
async def rebuild(
    store: Store,
    directory: Annotated[str | None, Query(description="Only rebuild this directory and its subdirectories")] = None,
    index_name: IndexNameQuery = None,
) -> RebuildReport:
    """
    Rebuild directory indexes from the concepts currently in the repository.
    Files that cannot be read are listed in the errors of the report.
    """
    return await rebuild_index(store, directory, index_name)


@app_concepts.post("/ids")
async def allocate_identifier(
    store: Store, directory: DirectoryQuery = "", index_name: IndexNameQuery = None
) -> IdResult:
    """
    Get an identifier that is not yet used as key in the index of the directory.
    """
    return IdResult(id=await new_concept_id(store, directory, index_name))


@app_concepts.get("/config")
async def get_config(store: Store) -> ConfigResult:
    """
    Get the schema config of the repository, or the default schema if it has none.
    """
    config, revision = await read_config(store)
    return ConfigResult(config=config, revision=revision, default=revision is None)


@app_concepts.put("/config")
async def put_config(store: Store, body: Annotated[ConfigBody, Body(...)]) -> ConfigResult:
    """
    Create or replace the schema config of the repository.
    """
    revision = await write_config(store, body.config, body.revision, body.message)
    return ConfigResult(config=body.config, revision=revision, default=False)


@app_concepts.get("/search")
async def search(
    store: Store,
    q: Annotated[str, Query(min_length=1, description="Search terms")],
    directory: Annotated[str | None, Query(description="Only search in this directory")] = None,
) -> SearchResults:
    """
    Search the concept files with GitHub code search.
    """
    return await search_concepts(store, q, directory)

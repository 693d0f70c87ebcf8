"""
Store and retrieve concepts, keeping the directory indexes up to date.

The concept blob is always written first; the index is only updated once the host confirmed that write.
The two writes are separate commits: if the index update fails (e.g. with Conflict) the concept is
stored but the index is stale until the concept is written again or the index is rebuilt.
"""

import logging
from typing import Any

from pydantic import BaseModel

from conceptrepo.config import get_settings
from conceptrepo.errors import NotFound
from conceptrepo.github.store import ContentStore
from conceptrepo.index.codec import index_fields_from_content, parse_object, serialize_object
from conceptrepo.index.document import IndexDocument, Remove, Upsert
from conceptrepo.index.identifiers import allocate_id
from conceptrepo.index.paths import index_path, index_path_for, is_indexed, normalize_path, split_path
from conceptrepo.index.updater import read_index, update_index
from conceptrepo.models import SearchResults
from conceptrepo.schema import default_schema


class Concept(BaseModel):
    path: str
    revision: str
    content: dict[str, Any]


class WriteResult(BaseModel):
    path: str
    revision: str
    indexed: bool


def _index_of(path: str, index_name: str | None) -> str | None:
    """The index document to update for a change of path, None if the file is not indexed"""
    index = index_path_for(path, index_name)
    return index if is_indexed(path, index_name) else None


async def _index_upsert(store: ContentStore, path: str, content: bytes, index: str | None) -> bool:
    if index is None:
        return False
    key, object_type = index_fields_from_content(content, path)
    _, file_name = split_path(path)
    await update_index(store, index, file_name, Upsert(key=key, object_type=object_type))
    return True


async def add_concept(
    store: ContentStore, path: str, content: bytes, message: str | None = None, index_name: str | None = None
) -> WriteResult:
    """
    Create a new concept file and add it to its directory index.
    raises Conflict if the file already exists
    """
    path = normalize_path(path)
    index = _index_of(path, index_name)
    revision = await store.put_content(path, content, message or f"Add {path}")
    logging.info(f"Created {path}")
    indexed = await _index_upsert(store, path, content, index)
    return WriteResult(path=path, revision=revision, indexed=indexed)


async def update_concept(
    store: ContentStore,
    path: str,
    content: bytes,
    message: str | None = None,
    revision: str | None = None,
    index_name: str | None = None,
) -> WriteResult:
    """
    Overwrite a concept file and update its directory index.

    :param revision: the revision the caller based its change on. If not given, the current revision is used,
                     which means the change overwrites whatever is stored now.
    """
    path = normalize_path(path)
    index = _index_of(path, index_name)
    if revision is None:
        revision = (await store.get_content(path)).revision
    new_revision = await store.put_content(path, content, message or f"Update {path}", revision)
    logging.info(f"Updated {path}")
    indexed = await _index_upsert(store, path, content, index)
    return WriteResult(path=path, revision=new_revision, indexed=indexed)


async def delete_concept(
    store: ContentStore,
    path: str,
    message: str | None = None,
    revision: str | None = None,
    index_name: str | None = None,
) -> None:
    """Delete a concept file and remove it from its directory index"""
    path = normalize_path(path)
    index = _index_of(path, index_name)
    if revision is None:
        revision = (await store.get_content(path)).revision
    await store.delete_content(path, revision, message or f"Delete {path}")
    logging.info(f"Deleted {path}")
    if index is not None:
        _, file_name = split_path(path)
        await update_index(store, index, file_name, Remove())


async def fetch_concept(store: ContentStore, path: str) -> Concept:
    path = normalize_path(path)
    blob = await store.get_content(path)
    return Concept(path=path, revision=blob.revision, content=parse_object(blob.content, path))


async def get_index(store: ContentStore, directory: str = "", index_name: str | None = None) -> IndexDocument:
    document, _ = await read_index(store, index_path(directory, index_name))
    return document


async def lookup(
    store: ContentStore,
    directory: str = "",
    key: str | None = None,
    object_type: str | None = None,
    index_name: str | None = None,
) -> list[str]:
    """Paths of the concepts in directory with the given key and/or type, according to the index"""
    document = await get_index(store, directory, index_name)
    directory = directory.strip("/")
    return [f"{directory}/{name}" if directory else name for name in document.lookup(key, object_type)]


async def new_concept_id(store: ContentStore, directory: str = "", index_name: str | None = None) -> int:
    """Allocate an identifier that is not yet used as a key in the directory index"""
    document = await get_index(store, directory, index_name)
    return allocate_id(document.search.by_key.keys())


async def search_concepts(store: ContentStore, query: str, directory: str | None = None) -> SearchResults:
    return await store.search_code(query, directory)


async def read_config(store: ContentStore) -> tuple[dict[str, Any], str | None]:
    """
    Read the schema config of the repository, with its revision.
    If there is no config yet, the default schema is returned with revision None.
    """
    path = get_settings().config_file
    try:
        blob = await store.get_content(path)
    except NotFound:
        logging.info(f"No {path} in repository, using default schema")
        return default_schema(), None
    return parse_object(blob.content, path), blob.revision


async def write_config(
    store: ContentStore, config: dict[str, Any], revision: str | None = None, message: str | None = None
) -> str:
    path = get_settings().config_file
    return await store.put_content(path, serialize_object(config), message or f"Update {path}", revision)

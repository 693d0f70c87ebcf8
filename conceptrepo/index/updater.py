"""
Incremental maintenance of directory indexes.

Every change to a concept is followed by a single read-modify-write of the index of its directory.
The write carries the revision that was read, so if another request updated the same index in the
meantime the write is rejected with Conflict. Retrying is left to the caller.
"""

import logging

from conceptrepo.errors import NotFound
from conceptrepo.github.store import ContentStore
from conceptrepo.index.document import IndexDocument, IndexMutation, Remove, Upsert, parse_index, serialize_index


async def read_index(store: ContentStore, path: str) -> tuple[IndexDocument, str | None]:
    """
    Read the index document at path, with its revision.
    A missing index yields an empty document and revision None.
    """
    try:
        blob = await store.get_content(path)
    except NotFound:
        return IndexDocument(), None
    return parse_index(blob.content), blob.revision


async def update_index(
    store: ContentStore,
    path: str,
    file_name: str,
    mutation: IndexMutation,
    message: str | None = None,
) -> IndexDocument | None:
    """
    Apply one mutation to the index document at path.

    :param path: location of the index document
    :param file_name: the concept file (within the index directory) that changed
    :param mutation: Upsert with the concept's current key and type, or Remove
    :return: the index document as written, or None if a Remove found no index
    """
    try:
        blob = await store.get_content(path)
    except NotFound:
        if isinstance(mutation, Remove):
            logging.debug(f"No index at {path}, nothing to remove for {file_name}")
            return None
        document, revision = IndexDocument(), None
    else:
        document, revision = parse_index(blob.content), blob.revision

    if not document.apply(file_name, mutation):
        logging.debug(f"Index {path} already up to date for {file_name}")
        return document

    if message is None:
        message = f"Update index for {file_name}" if isinstance(mutation, Upsert) else f"Remove {file_name} from index"
    await store.put_content(path, serialize_index(document), message, revision)
    logging.info(f"Updated index {path} ({mutation.action} {file_name}, {document.metadata.total_files} files)")
    return document

"""
Rebuild directory indexes from a full scan of the repository.

The tree is listed once, and the concept files are fetched in batches: the files of a batch
concurrently, the batches one after the other to limit the number of outstanding requests.
A file that cannot be fetched or parsed is reported and skipped, it does not stop the rebuild.

A rebuild discards the previous content of the index and overwrites it using the revision read just
before the write. Incremental updates made while the scan was running are lost; run the rebuild again
(or update the concept) to pick them up.
"""

import asyncio
import logging
from collections import Counter
from itertools import islice
from typing import Iterable, Iterator, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from conceptrepo.config import get_settings
from conceptrepo.errors import ContentStoreError, MalformedPayload, NotFound
from conceptrepo.github.store import ContentStore
from conceptrepo.index.codec import extract_index_fields, parse_object
from conceptrepo.index.document import IndexDocument, serialize_index
from conceptrepo.index.paths import in_directory, index_file_name, index_path, is_indexed, split_path

T = TypeVar("T")


class RebuildError(BaseModel):
    file: str
    error: str


class RebuildReport(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    files_processed: int = 0
    by_type_counts: dict[str, int] = Field(default_factory=dict)
    errors: list[RebuildError] = Field(default_factory=list)
    indexes: list[str] = Field(default_factory=list, description="The index documents that were written")


def batched(items: Iterable[T], size: int) -> Iterator[list[T]]:
    it = iter(items)
    while batch := list(islice(it, size)):
        yield batch


async def _fetch_fields(store: ContentStore, path: str) -> tuple[str, str]:
    blob = await store.get_content(path)
    return extract_index_fields(parse_object(blob.content, path))


async def build_documents(
    store: ContentStore, paths: list[str], report: RebuildReport, batch_size: int | None = None
) -> dict[str, IndexDocument]:
    """
    Fetch the given concept files and index them into fresh documents, one per directory.
    Failures are added to report.errors.
    """
    batch_size = batch_size or get_settings().rebuild_batch_size
    documents: dict[str, IndexDocument] = {}
    for i, batch in enumerate(batched(paths, batch_size)):
        results = await asyncio.gather(*(_fetch_fields(store, path) for path in batch), return_exceptions=True)
        for path, result in zip(batch, results):
            if isinstance(result, (ContentStoreError, MalformedPayload)):
                logging.warning(f"Skipping {path} in rebuild: {result}")
                report.errors.append(RebuildError(file=path, error=str(result)))
                continue
            if isinstance(result, BaseException):
                raise result
            directory, file_name = split_path(path)
            key, object_type = result
            documents.setdefault(directory, IndexDocument()).upsert(file_name, key, object_type)
            report.files_processed += 1
        logging.debug(f"Rebuild batch {i + 1}: {len(batch)} files, {report.files_processed} indexed so far")
    return documents


async def commit_index(store: ContentStore, path: str, document: IndexDocument, message: str) -> None:
    """Write a rebuilt document over the current index, whatever its content"""
    try:
        revision: str | None = (await store.get_content(path)).revision
    except NotFound:
        revision = None
    document.touch()
    await store.put_content(path, serialize_index(document), message, revision)


async def rebuild_index(
    store: ContentStore,
    directory: str | None = None,
    index_name: str | None = None,
    batch_size: int | None = None,
) -> RebuildReport:
    """
    Rebuild the indexes of all directories (below directory, if given) from the concepts in the tree.

    :param directory: only rebuild this directory and its subdirectories; its own index is written even if empty
    :param index_name: the index namespace to rebuild
    """
    directory = directory.strip("/") if directory else None
    index_file = index_file_name(index_name)
    tree = await store.list_tree(recursive=True)
    blobs = [entry.path for entry in tree if entry.kind == "blob" and in_directory(entry.path, directory)]
    paths = [path for path in blobs if is_indexed(path, index_name)]
    # directories with an index but without concepts get an empty index
    indexed_dirs = [dir_name for dir_name, file_name in map(split_path, blobs) if file_name == index_file]
    logging.info(f"Rebuilding index{' of ' + directory if directory else ''}: {len(paths)} concept files")

    report = RebuildReport()
    documents = await build_documents(store, paths, report, batch_size)
    if directory is not None:
        documents.setdefault(directory, IndexDocument())
    for dir_name in indexed_dirs:
        documents.setdefault(dir_name, IndexDocument())

    counts: Counter[str] = Counter()
    for dir_name, document in sorted(documents.items()):
        path = index_path(dir_name, index_name)
        await commit_index(store, path, document, f"Rebuild index ({document.metadata.total_files} files)")
        counts.update(document.type_counts())
        report.indexes.append(path)

    report.by_type_counts = dict(counts)
    logging.info(
        f"Rebuilt {len(report.indexes)} indexes with {report.files_processed} files, {len(report.errors)} errors"
    )
    return report

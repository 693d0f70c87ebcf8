"""
The index document kept next to the concepts of a directory.

An index document has three parts:
- metadata: last update time, number of files, format version
- files: {file_name: {key, objectType}}, the fields extracted from each concept
- search: the byKey and byType inverted indexes, derived from files

files is the source of truth. The inverted indexes are rebuilt from it whenever a document is parsed,
and are kept in sync by upsert and remove, which never leave an empty bucket behind.

Older repositories contain a flat {file_name: key} index. Such documents are recognized on parse
and migrated to the current format.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from conceptrepo.index.codec import indexable

CURRENT_VERSION = "2.0"
STRUCTURED_FIELDS = {"metadata", "files", "search"}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def now() -> str:
    return datetime.now(UTC).isoformat()


class IndexMetadata(_CamelModel):
    last_updated: str = Field(default_factory=now)
    total_files: int = 0
    version: str = CURRENT_VERSION


class IndexEntry(_CamelModel):
    key: str = ""
    object_type: str = ""


class InvertedIndexes(_CamelModel):
    by_key: dict[str, list[str]] = Field(default_factory=dict)
    by_type: dict[str, list[str]] = Field(default_factory=dict)


class Upsert(BaseModel):
    """Add a file to the index, or change its key and type"""

    action: Literal["upsert"] = "upsert"
    key: str = ""
    object_type: str = ""


class Remove(BaseModel):
    """Drop a file from the index"""

    action: Literal["remove"] = "remove"


IndexMutation = Annotated[Upsert | Remove, Field(discriminator="action")]


def _add_to_bucket(buckets: dict[str, list[str]], value: str, file_name: str):
    if not value:
        return
    bucket = buckets.setdefault(value, [])
    if file_name not in bucket:
        bucket.append(file_name)


def _remove_from_bucket(buckets: dict[str, list[str]], value: str, file_name: str):
    bucket = buckets.get(value)
    if bucket is None:
        return
    if file_name in bucket:
        bucket.remove(file_name)
    if not bucket:
        del buckets[value]


class IndexDocument(_CamelModel):
    metadata: IndexMetadata = Field(default_factory=IndexMetadata)
    files: dict[str, IndexEntry] = Field(default_factory=dict)
    search: InvertedIndexes = Field(default_factory=InvertedIndexes)

    def upsert(self, file_name: str, key: str, object_type: str) -> bool:
        """
        Index a file under the given key and type.

        :return: False if the file was already indexed with exactly this key and type
        """
        old = self.files.get(file_name)
        if old is not None:
            if old.key == key and old.object_type == object_type:
                return False
            _remove_from_bucket(self.search.by_key, old.key, file_name)
            _remove_from_bucket(self.search.by_type, old.object_type, file_name)
        self.files[file_name] = IndexEntry(key=key, object_type=object_type)
        _add_to_bucket(self.search.by_key, key, file_name)
        _add_to_bucket(self.search.by_type, object_type, file_name)
        self.touch()
        return True

    def remove(self, file_name: str) -> bool:
        """
        Remove a file from the index.

        :return: False if the file was not indexed
        """
        entry = self.files.pop(file_name, None)
        if entry is None:
            return False
        _remove_from_bucket(self.search.by_key, entry.key, file_name)
        _remove_from_bucket(self.search.by_type, entry.object_type, file_name)
        self.touch()
        return True

    def apply(self, file_name: str, mutation: IndexMutation) -> bool:
        """Apply a single mutation, returning whether the document changed"""
        if isinstance(mutation, Upsert):
            return self.upsert(file_name, mutation.key, mutation.object_type)
        return self.remove(file_name)

    def touch(self):
        self.metadata.total_files = len(self.files)
        self.metadata.last_updated = now()
        self.metadata.version = CURRENT_VERSION

    def reindex(self):
        """Rebuild the inverted indexes from files"""
        self.search = InvertedIndexes()
        for file_name, entry in self.files.items():
            _add_to_bucket(self.search.by_key, entry.key, file_name)
            _add_to_bucket(self.search.by_type, entry.object_type, file_name)
        self.metadata.total_files = len(self.files)

    def lookup(self, key: str | None = None, object_type: str | None = None) -> list[str]:
        """File names matching all given criteria, through the inverted indexes"""
        if key is None and object_type is None:
            return list(self.files)
        result: list[str] | None = None
        for buckets, value in ((self.search.by_key, key), (self.search.by_type, object_type)):
            if value is None:
                continue
            names = buckets.get(value, [])
            result = names if result is None else [name for name in result if name in names]
        return list(result or [])

    def type_counts(self) -> dict[str, int]:
        return {object_type: len(names) for object_type, names in self.search.by_type.items()}


def migrate_legacy(raw: dict[str, Any]) -> IndexDocument:
    """Convert a flat {file_name: key} index into the current format"""
    document = IndexDocument(files={name: IndexEntry(key=indexable(value)) for name, value in raw.items()})
    document.reindex()
    return document


def _parse_metadata(raw: Any) -> IndexMetadata:
    if not isinstance(raw, dict):
        return IndexMetadata()
    try:
        return IndexMetadata.model_validate(raw)
    except ValidationError as e:
        logging.warning(f"Index metadata could not be read, using defaults: {e}")
        return IndexMetadata()


def _parse_entry(file_name: str, raw: Any) -> IndexEntry:
    if isinstance(raw, dict):
        object_type = raw.get("objectType", raw.get("object_type"))
        return IndexEntry(key=indexable(raw.get("key")), object_type=indexable(object_type))
    if raw is not None and not isinstance(raw, (str, int, float)):
        logging.warning(f"Index entry for {file_name} could not be read, keeping it without key and type")
    # a bare key, as in legacy documents
    return IndexEntry(key=indexable(raw))


def parse_index(content: bytes | str) -> IndexDocument:
    """
    Parse an index document, migrating legacy documents and filling in missing parts.
    Content that is not a JSON object yields an empty document.

    Each part is read on its own: unreadable metadata is replaced by defaults, and an unreadable
    file entry keeps the file with empty key and type, so a damaged part never loses the files.
    """
    try:
        raw = json.loads(content)
    except ValueError as e:
        logging.warning(f"Index document is not valid JSON, starting from an empty index: {e}")
        return IndexDocument()
    if not isinstance(raw, dict):
        return IndexDocument()
    if not STRUCTURED_FIELDS & raw.keys():
        if raw:
            logging.info(f"Migrating legacy index with {len(raw)} entries to version {CURRENT_VERSION}")
        return migrate_legacy(raw)

    files = raw.get("files")
    if not isinstance(files, dict):
        if files is not None:
            logging.warning(f"Index files is not an object ({type(files).__name__}), starting from an empty index")
        files = {}
    document = IndexDocument(
        metadata=_parse_metadata(raw.get("metadata")),
        files={str(name): _parse_entry(name, entry) for name, entry in files.items()},
    )
    document.metadata.version = CURRENT_VERSION
    document.reindex()
    return document


def serialize_index(document: IndexDocument) -> bytes:
    return document.model_dump_json(by_alias=True, indent=2).encode("utf-8")

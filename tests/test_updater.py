import asyncio

import pytest

from conceptrepo.concepts import add_concept, delete_concept, update_concept
from conceptrepo.errors import Conflict, NotFound
from conceptrepo.index.document import IndexDocument, Remove, Upsert, serialize_index
from conceptrepo.index.updater import read_index, update_index
from tests.tools import MemoryStore, assert_consistent


class RacingStore(MemoryStore):
    """Lets two requests read the index before either of them writes it"""

    def __init__(self, *args, **kargs):
        super().__init__(*args, **kargs)
        self.readers = 0
        self.both_read = asyncio.Event()

    async def get_content(self, path):
        blob = await super().get_content(path)
        if path.endswith("index.json"):
            self.readers += 1
            if self.readers == 2:
                self.both_read.set()
            await self.both_read.wait()
        return blob


@pytest.mark.anyio
async def test_update_creates_index(store):
    doc = await update_index(store, "concepts/index.json", "a.json", Upsert(key="k", object_type="concept"))
    assert doc is not None
    stored = store.read_index("concepts/index.json")
    assert stored.files["a.json"].key == "k"
    assert stored.search.by_type == {"concept": ["a.json"]}
    assert_consistent(stored)


@pytest.mark.anyio
async def test_update_existing_index(store):
    await update_index(store, "index.json", "a.json", Upsert(key="k1", object_type="concept"))
    await update_index(store, "index.json", "b.json", Upsert(key="k2", object_type="concept"))
    await update_index(store, "index.json", "a.json", Upsert(key="k3", object_type="term"))
    stored = store.read_index("index.json")
    assert stored.search.by_key == {"k2": ["b.json"], "k3": ["a.json"]}
    assert stored.search.by_type == {"concept": ["b.json"], "term": ["a.json"]}
    assert_consistent(stored)


@pytest.mark.anyio
async def test_update_migrates_legacy_index():
    store = MemoryStore({"index.json": {"old.json": "123"}})
    await update_index(store, "index.json", "new.json", Upsert(key="456", object_type="concept"))
    raw = store.read_json("index.json")
    assert raw["metadata"]["version"] == "2.0"
    assert raw["files"]["old.json"] == {"key": "123", "objectType": ""}
    assert raw["search"]["byKey"] == {"123": ["old.json"], "456": ["new.json"]}


@pytest.mark.anyio
async def test_update_keeps_entries_of_damaged_index():
    stored = {
        "metadata": {"lastUpdated": 1704067200000, "totalFiles": 3, "version": "2.0"},
        "files": {
            "a.json": {"key": "1", "objectType": "concept"},
            "b.json": {"key": "2", "objectType": "concept"},
            "c.json": {"key": "3", "objectType": None},
        },
    }
    store = MemoryStore({"d/index.json": stored})
    await update_index(store, "d/index.json", "new.json", Upsert(key="4", object_type="term"))
    written = store.read_index("d/index.json")
    assert set(written.files) == {"a.json", "b.json", "c.json", "new.json"}
    assert written.search.by_type == {"concept": ["a.json", "b.json"], "term": ["new.json"]}
    assert isinstance(store.read_json("d/index.json")["metadata"]["lastUpdated"], str)
    assert_consistent(written)


@pytest.mark.anyio
async def test_unchanged_upsert_does_not_write(store):
    await update_index(store, "index.json", "a.json", Upsert(key="k", object_type="concept"))
    revision = store.revision("index.json")
    await update_index(store, "index.json", "a.json", Upsert(key="k", object_type="concept"))
    assert store.revision("index.json") == revision


@pytest.mark.anyio
async def test_remove_without_index_is_noop(store):
    assert await update_index(store, "concepts/index.json", "a.json", Remove()) is None
    assert "concepts/index.json" not in store.blobs


@pytest.mark.anyio
async def test_remove_unknown_file_is_noop(store):
    await update_index(store, "index.json", "a.json", Upsert(key="k", object_type="concept"))
    revision = store.revision("index.json")
    await update_index(store, "index.json", "b.json", Remove())
    assert store.revision("index.json") == revision


@pytest.mark.anyio
async def test_concurrent_updates_conflict():
    doc = IndexDocument()
    doc.upsert("existing.json", "1", "concept")
    store = RacingStore({"index.json": serialize_index(doc)})

    names = ["a.json", "b.json"]
    results = await asyncio.gather(
        *(update_index(store, "index.json", name, Upsert(key=name, object_type="concept")) for name in names),
        return_exceptions=True,
    )
    conflicts = [name for name, r in zip(names, results) if isinstance(r, Conflict)]
    written = [name for name, r in zip(names, results) if isinstance(r, IndexDocument)]
    assert len(conflicts) == 1 and len(written) == 1

    stored = store.read_index("index.json")
    assert set(stored.files) == {"existing.json", written[0]}
    assert_consistent(stored)


@pytest.mark.anyio
async def test_read_index_missing(store):
    doc, revision = await read_index(store, "nothing/index.json")
    assert doc.files == {} and revision is None


@pytest.mark.anyio
async def test_add_concept_updates_directory_index(store):
    result = await add_concept(store, "concepts/animals/cat.json", b'{"key": "1", "object_type": "concept"}')
    assert result.indexed
    assert result.revision == store.revision("concepts/animals/cat.json")
    assert store.read_index("concepts/animals/index.json").files["cat.json"].key == "1"
    assert "index.json" not in store.blobs
    assert "concepts/index.json" not in store.blobs


@pytest.mark.anyio
async def test_add_existing_concept_conflicts(store):
    await add_concept(store, "a.json", b'{"key": "1"}')
    with pytest.raises(Conflict):
        await add_concept(store, "a.json", b'{"key": "2"}')
    assert store.read_index("index.json").files["a.json"].key == "1"


@pytest.mark.anyio
async def test_add_malformed_concept_is_indexed(store):
    await add_concept(store, "c/broken.json", b"{this is not json")
    entry = store.read_index("c/index.json").files["broken.json"]
    assert (entry.key, entry.object_type) == ("", "")


@pytest.mark.anyio
async def test_reserved_files_skip_index(store):
    for path in ("c/.gitkeep", "c/notes.txt", "c/index.json", "config.json"):
        result = await add_concept(store, path, b"{}")
        assert not result.indexed
    assert "c/index.json" in store.blobs  # written as a plain file
    assert store.read_json("c/index.json") == {}
    assert "index.json" not in store.blobs


@pytest.mark.anyio
async def test_update_concept(store):
    await add_concept(store, "c/a.json", b'{"key": "1", "object_type": "concept"}')
    stale = store.revision("c/a.json")
    await update_concept(store, "c/a.json", b'{"key": "2", "object_type": "term"}')
    index = store.read_index("c/index.json")
    assert index.search.by_key == {"2": ["a.json"]}
    assert index.search.by_type == {"term": ["a.json"]}

    with pytest.raises(Conflict):
        await update_concept(store, "c/a.json", b'{"key": "3"}', revision=stale)
    assert store.read_index("c/index.json").files["a.json"].key == "2"


@pytest.mark.anyio
async def test_delete_concept(store):
    await add_concept(store, "c/a.json", b'{"key": "1", "object_type": "concept"}')
    await add_concept(store, "c/b.json", b'{"key": "2", "object_type": "concept"}')
    await delete_concept(store, "c/a.json")
    assert "c/a.json" not in store.blobs
    index = store.read_index("c/index.json")
    assert set(index.files) == {"b.json"}
    assert index.search.by_key == {"2": ["b.json"]}
    assert_consistent(index)

    with pytest.raises(NotFound):
        await delete_concept(store, "c/a.json")


@pytest.mark.anyio
async def test_index_namespace(store):
    await add_concept(store, "c/a.json", b'{"key": "1", "object_type": "concept"}', index_name="concepts")
    assert "c/concepts.json" in store.blobs
    assert "c/index.json" not in store.blobs


@pytest.mark.anyio
async def test_index_namespace_cannot_be_config():
    store = MemoryStore({"config.json": {"version": "1.0", "types": {}}})
    with pytest.raises(ValueError):
        await add_concept(store, "a.json", b'{"key": "1"}', index_name="config")
    assert "a.json" not in store.blobs
    assert store.read_json("config.json") == {"version": "1.0", "types": {}}

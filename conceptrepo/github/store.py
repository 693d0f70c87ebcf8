"""
The content store interface used by the index subsystem.

A content store keeps blobs by path. Every blob has a revision token, which must be passed
when overwriting or deleting it so that a concurrent change is never silently overwritten.
"""

from typing import Protocol

from conceptrepo.models import SearchResults, StoredBlob, TreeEntry


class ContentStore(Protocol):
    async def get_content(self, path: str) -> StoredBlob:
        """raises NotFound if there is no blob at path"""
        ...

    async def put_content(self, path: str, content: bytes, message: str, revision: str | None = None) -> str:
        """
        Create (revision=None) or overwrite a blob, returning its new revision.
        raises Conflict if the revision is stale, or missing for an existing blob
        """
        ...

    async def delete_content(self, path: str, revision: str, message: str) -> None: ...

    async def list_tree(self, recursive: bool = True) -> list[TreeEntry]: ...

    async def search_code(self, query: str, scope: str | None = None) -> SearchResults: ...

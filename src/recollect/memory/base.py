"""
Document store interface.

The memory vault is a tree of text documents addressed by relative POSIX-style
paths ("TopicProfiles/python.md"). Backends only move text around; record
formats live in the profile/summary modules.
"""

from abc import ABC, abstractmethod


class DocumentStore(ABC):
    """Abstract document storage interface."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check whether a document or folder exists."""
        ...

    @abstractmethod
    async def read(self, path: str) -> str:
        """Read document text. Raises FileNotFoundError if absent."""
        ...

    @abstractmethod
    async def write(self, path: str, text: str) -> None:
        """Create or overwrite a document atomically."""
        ...

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Delete a document, return whether it existed."""
        ...

    @abstractmethod
    async def create_folder(self, path: str) -> None:
        """Create a folder (and parents). No-op if present."""
        ...

    @abstractmethod
    async def list(self, folder: str) -> list[str]:
        """List document paths directly inside a folder."""
        ...

    async def modify(self, path: str, text: str) -> None:
        """Overwrite an existing document."""
        if not await self.exists(path):
            raise FileNotFoundError(path)
        await self.write(path, text)

    async def read_optional(self, path: str) -> str | None:
        """Read a document, returning None when missing."""
        if not await self.exists(path):
            return None
        return await self.read(path)

    async def close(self) -> None:
        """Release backend resources."""
        return None

"""File workspaces the fixer reads manifests from and writes them back to."""

from __future__ import annotations

import asyncio
import logging
import posixpath
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Workspace(Protocol):
    """Read/write text files by relative path.

    Implementations raise ``OSError`` (or a subclass) on failure.
    """

    async def read_file(self, path: str) -> str: ...

    async def write_file(self, path: str, content: str) -> None: ...


class LocalWorkspace:
    """Workspace backed by a directory on the local filesystem."""

    def __init__(self, root: Path | str | None = None):
        self.root = Path(root or Path.cwd()).resolve()

    async def read_file(self, path: str) -> str:
        file_path = self._resolve_file(path)
        logger.debug("Reading %s", file_path)
        return await asyncio.to_thread(_read_text, file_path)

    async def write_file(self, path: str, content: str) -> None:
        file_path = self._resolve_file(path)
        logger.debug("Writing %s", file_path)
        await asyncio.to_thread(_write_text, file_path, content)

    def _resolve_file(self, path: str) -> Path:
        """Resolve a workspace-relative path, refusing to escape the root."""
        file_path = Path(path.replace("\\", "/"))
        if not file_path.is_absolute():
            file_path = self.root / file_path
        file_path = file_path.resolve()
        if file_path != self.root and self.root not in file_path.parents:
            raise PermissionError(f"Path escapes workspace root: {path}")
        return file_path


class OverlayWorkspace:
    """Buffers writes in memory on top of another workspace.

    Reads see buffered content first. Nothing reaches ``base`` until
    ``flush``, which writes each buffered path exactly once.
    """

    def __init__(self, base: Workspace):
        self.base = base
        self.contents: dict[str, str] = {}

    async def read_file(self, path: str) -> str:
        key = normalize_path(path)
        if key in self.contents:
            return self.contents[key]
        return await self.base.read_file(path)

    async def write_file(self, path: str, content: str) -> None:
        self.contents[normalize_path(path)] = content

    async def flush(self) -> dict[str, Exception]:
        """Write buffered files to ``base``; return the paths that failed."""
        errors: dict[str, Exception] = {}
        for path, content in self.contents.items():
            logger.debug("Flushing %s", path)
            try:
                await self.base.write_file(path, content)
            except OSError as e:
                errors[path] = e
        self.contents.clear()
        return errors


def _read_text(file_path: Path) -> str:
    # newline="" keeps the file's own line endings
    with open(file_path, encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(file_path: Path, content: str) -> None:
    with open(file_path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def join_path(directory: str, file_name: str) -> str:
    """Join and normalize a workspace path, separator-insensitive."""
    joined = posixpath.join(directory.replace("\\", "/"), file_name.replace("\\", "/"))
    return posixpath.normpath(joined) if joined else joined


def normalize_path(path: str) -> str:
    """Collapse equivalent spellings of a workspace path to one form."""
    return join_path("", path)

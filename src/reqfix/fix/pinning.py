"""Choose which file in a manifest's provenance receives new pins."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass

from reqfix.core.workspace import Workspace, join_path, normalize_path
from reqfix.manifest.parser import parse_requirements

logger = logging.getLogger(__name__)


@dataclass
class PinTarget:
    file_name: str  # relative to the entry file's directory
    file_content: str


async def select_file_for_pinning(
    workspace: Workspace,
    target_file: str,
    pending: dict[str, str] | None = None,
) -> PinTarget:
    """Pins go into the scanned file unless it names a constraints file.

    Only the first ``-c`` directive of the scanned file counts. ``pending``
    holds content already rewritten in this run (keyed by normalized path)
    and wins over what is on disk.
    """
    pending = pending or {}
    directory, base = posixpath.split(normalize_path(target_file))
    file_name = base
    content = await _current_content(workspace, join_path(directory, base), pending)

    constraint_files = parse_requirements(content).constraint_files
    if constraint_files:
        file_name = normalize_path(constraint_files[0])
        logger.debug("Pinning in constraints file %s", file_name)
        content = await _current_content(workspace, join_path(directory, file_name), pending)

    return PinTarget(file_name=file_name, file_content=content)


async def _current_content(workspace: Workspace, path: str, pending: dict[str, str]) -> str:
    if path in pending:
        return pending[path]
    return await workspace.read_file(path)

"""Follow ``-r`` / ``-c`` directives to find every file a manifest pulls in."""

from __future__ import annotations

import logging
import posixpath

from reqfix.core.errors import ProvenanceCycleError
from reqfix.core.workspace import Workspace, join_path
from reqfix.manifest.parser import ParsedManifest, parse_requirements

logger = logging.getLogger(__name__)

# file name relative to the entry file's directory -> parsed content
ProvenanceMap = dict[str, ParsedManifest]


async def extract_provenance(
    workspace: Workspace,
    directory: str,
    file_name: str,
) -> ProvenanceMap:
    """Read the entry file and everything it includes, recursively.

    Keys are relative to ``directory`` and appear in discovery order with the
    entry file first. A file is read once even if several files include it;
    a file including one of its own includers raises ``ProvenanceCycleError``.
    """
    provenance: ProvenanceMap = {}
    await _extract(workspace, directory, _relative(file_name), provenance, [])
    logger.debug(
        "Provenance of %s: %s", join_path(directory, file_name), ", ".join(provenance)
    )
    return provenance


async def _extract(
    workspace: Workspace,
    root_dir: str,
    relative_name: str,
    provenance: ProvenanceMap,
    stack: list[str],
) -> None:
    if relative_name in stack:
        raise ProvenanceCycleError(stack[stack.index(relative_name):] + [relative_name])
    if relative_name in provenance:
        return

    content = await workspace.read_file(join_path(root_dir, relative_name))
    parsed = parse_requirements(content)
    provenance[relative_name] = parsed

    including_dir = posixpath.dirname(relative_name)
    stack.append(relative_name)
    for directive in parsed.directives:
        included = _relative(posixpath.join(including_dir, directive.target.replace("\\", "/")))
        await _extract(workspace, root_dir, included, provenance, stack)
    stack.pop()


def _relative(file_name: str) -> str:
    return posixpath.normpath(file_name.replace("\\", "/"))

"""Manifest handling -- parsing, include resolution and line patching.

Parser::

    from reqfix.manifest.parser import parse_requirements, ParsedManifest

Provenance::

    from reqfix.manifest.provenance import extract_provenance

Patcher::

    from reqfix.manifest.patcher import update_dependencies
"""

from reqfix.manifest.parser import ParsedManifest, parse_requirements
from reqfix.manifest.patcher import PatchResult, update_dependencies
from reqfix.manifest.provenance import ProvenanceMap, extract_provenance

__all__ = [
    "ParsedManifest",
    "parse_requirements",
    "PatchResult",
    "update_dependencies",
    "ProvenanceMap",
    "extract_provenance",
]

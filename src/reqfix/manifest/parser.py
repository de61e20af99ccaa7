"""Lossless parser for requirements-style manifest files.

Every physical line is kept with its original text and line ending, tagged
with what it is. Requirement lines additionally remember where their version
specifier sits so it can be swapped out without touching extras, markers,
whitespace or trailing comments.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field

from packaging.requirements import InvalidRequirement, Requirement

from reqfix.manifest.names import standardize_package_name

logger = logging.getLogger(__name__)


class LineKind(enum.Enum):
    REQUIREMENT = "requirement"
    COMMENT = "comment"
    BLANK = "blank"
    INCLUDE = "include"
    CONSTRAINT = "constraint"
    OPTION = "option"
    UNPARSED = "unparsed"


# pip only treats "#" as a comment at line start or after whitespace
_COMMENT_RE = re.compile(r"(^|\s+)#.*$")
_DIRECTIVE_RE = re.compile(
    r"^\s*(?P<flag>--requirement|--constraint|-r|-c)(?:\s*=\s*|\s*)(?P<target>[^\s#]+)"
)
_REQ_HEAD_RE = re.compile(
    r"^\s*(?P<name>[A-Za-z0-9][A-Za-z0-9._-]*)\s*(?P<extras>\[[^\]]*\])?\s*"
)
_INCLUDE_FLAGS = {"-r", "--requirement"}


@dataclass
class ManifestLine:
    """One physical line of a manifest."""

    index: int
    text: str
    ending: str
    kind: LineKind
    name: str = ""
    extras: str = ""
    specifier: str = ""
    operator: str = ""
    version: str = ""
    marker: str = ""
    comment: str = ""
    url: str = ""
    target: str = ""
    spec_span: tuple[int, int] | None = None

    @property
    def line_number(self) -> int:
        return self.index + 1

    @property
    def standardized_name(self) -> str:
        return standardize_package_name(self.name) if self.name else ""

    def with_specifier(self, new_specifier: str) -> str:
        """Return this line's text with the version specifier replaced."""
        if self.spec_span is None:
            raise ValueError(f"Line {self.line_number} has no replaceable specifier")
        start, end = self.spec_span
        return self.text[:start] + new_specifier + self.text[end:]


@dataclass
class ParsedManifest:
    """Ordered, tagged lines of a manifest plus its newline convention."""

    lines: list[ManifestLine] = field(default_factory=list)
    newline: str = "\n"

    @property
    def requirements(self) -> list[ManifestLine]:
        return [line for line in self.lines if line.kind == LineKind.REQUIREMENT]

    @property
    def directives(self) -> list[ManifestLine]:
        return [
            line for line in self.lines
            if line.kind in (LineKind.INCLUDE, LineKind.CONSTRAINT)
        ]

    @property
    def constraint_files(self) -> list[str]:
        return [line.target for line in self.lines if line.kind == LineKind.CONSTRAINT]

    def find_requirements(self, package_name: str) -> list[ManifestLine]:
        wanted = standardize_package_name(package_name)
        return [line for line in self.requirements if line.standardized_name == wanted]

    def render(
        self,
        replacements: dict[int, str] | None = None,
        additions: list[str] | None = None,
    ) -> str:
        """Rebuild the file text, swapping replaced lines and appending additions."""
        replacements = replacements or {}
        out = [replacements.get(line.index, line.text) + line.ending for line in self.lines]
        if additions:
            if out and not self.lines[-1].ending:
                out[-1] += self.newline
            out.extend(f"{addition}{self.newline}" for addition in additions)
        return "".join(out)


def parse_requirements(text: str) -> ParsedManifest:
    """Parse requirements file text into a ``ParsedManifest``."""
    raw_lines = text.splitlines(keepends=True)
    lines: list[ManifestLine] = []
    continued = False

    for index, raw in enumerate(raw_lines):
        body = raw.rstrip("\r\n")
        ending = raw[len(body):]

        if continued:
            lines.append(ManifestLine(index, body, ending, LineKind.UNPARSED))
            continued = body.endswith("\\")
            continue
        if body.endswith("\\"):
            logger.debug(
                "Line %d continues onto the next line; it is kept as is and never patched",
                index + 1,
            )
            lines.append(ManifestLine(index, body, ending, LineKind.UNPARSED))
            continued = True
            continue

        lines.append(_parse_line(index, body, ending))

    return ParsedManifest(lines=lines, newline=_detect_newline(raw_lines))


def _parse_line(index: int, text: str, ending: str) -> ManifestLine:
    stripped = text.strip()
    if not stripped:
        return ManifestLine(index, text, ending, LineKind.BLANK)
    if stripped.startswith("#"):
        return ManifestLine(index, text, ending, LineKind.COMMENT, comment=stripped)

    if stripped.startswith("-"):
        match = _DIRECTIVE_RE.match(text)
        if match:
            kind = LineKind.INCLUDE if match.group("flag") in _INCLUDE_FLAGS else LineKind.CONSTRAINT
            return ManifestLine(index, text, ending, kind, target=match.group("target"))
        return ManifestLine(index, text, ending, LineKind.OPTION)

    return _parse_requirement(index, text, ending)


def _parse_requirement(index: int, text: str, ending: str) -> ManifestLine:
    comment_match = _COMMENT_RE.search(text)
    body = text[: comment_match.start()] if comment_match else text
    comment = text[comment_match.start():].strip() if comment_match else ""

    try:
        req = Requirement(body.strip())
    except InvalidRequirement:
        return ManifestLine(index, text, ending, LineKind.UNPARSED, comment=comment)

    head = _REQ_HEAD_RE.match(body)
    if head is None:
        return ManifestLine(index, text, ending, LineKind.UNPARSED, comment=comment)

    line = ManifestLine(
        index,
        text,
        ending,
        LineKind.REQUIREMENT,
        name=head.group("name"),
        extras=head.group("extras") or "",
        marker=str(req.marker) if req.marker else "",
        comment=comment,
        url=req.url or "",
    )
    if req.url:
        return line

    specs = list(req.specifier)
    if len(specs) == 1:
        line.operator = specs[0].operator
        line.version = specs[0].version

    name_end = head.end("extras") if head.group("extras") else head.end("name")
    marker_at = body.find(";", head.end())
    region_end = marker_at if marker_at != -1 else len(body)
    region = body[head.end():region_end].rstrip()
    if region:
        line.specifier = region
        line.spec_span = (head.end(), head.end() + len(region))
    else:
        line.spec_span = (name_end, name_end)
    return line


def _detect_newline(raw_lines: list[str]) -> str:
    crlf = sum(1 for raw in raw_lines if raw.endswith("\r\n"))
    return "\r\n" if crlf and crlf * 2 >= len(raw_lines) else "\n"

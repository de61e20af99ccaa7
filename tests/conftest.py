"""Shared fixtures: an in-memory workspace and a unit factory."""

from __future__ import annotations

import pytest

from reqfix.core.models import FixableUnit, RemediationPlan
from reqfix.core.workspace import normalize_path


class MemoryWorkspace:
    """Workspace over a dict of path -> content that records every access."""

    def __init__(self, files: dict[str, str] | None = None):
        self.files = {normalize_path(k): v for k, v in (files or {}).items()}
        self.reads: list[str] = []
        self.writes: list[tuple[str, str]] = []

    async def read_file(self, path: str) -> str:
        key = normalize_path(path)
        self.reads.append(key)
        if key not in self.files:
            raise FileNotFoundError(f"No such file: {path}")
        return self.files[key]

    async def write_file(self, path: str, content: str) -> None:
        key = normalize_path(path)
        self.writes.append((key, content))
        self.files[key] = content

    def written_paths(self) -> list[str]:
        return [path for path, _ in self.writes]


@pytest.fixture
def workspace() -> MemoryWorkspace:
    return MemoryWorkspace()


@pytest.fixture
def make_unit(workspace: MemoryWorkspace):
    """Build a FixableUnit on the shared workspace from plain plan data."""

    def _make(
        target_file: str | None = "requirements.txt",
        upgrade: dict | None = None,
        pin: dict | None = None,
        plan: RemediationPlan | None = None,
        ws=workspace,
    ) -> FixableUnit:
        if plan is None and (upgrade is not None or pin is not None):
            plan = RemediationPlan.from_dict({"upgrade": upgrade or {}, "pin": pin or {}})
        return FixableUnit(target_file=target_file, plan=plan, workspace=ws)

    return _make


@pytest.fixture
def make_workspace():
    """Factory for additional in-memory workspaces seeded with files."""
    return MemoryWorkspace

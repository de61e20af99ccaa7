"""Shared data models used across reqfix modules."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from reqfix.core.workspace import Workspace


@dataclass(frozen=True)
class UpgradeSpec:
    """Target of a single remediation entry."""

    upgrade_to: str
    vulns: list[str] = field(default_factory=list)

    @classmethod
    def from_value(cls, value: Any) -> UpgradeSpec:
        """Build from a bare version string or a mapping."""
        if isinstance(value, UpgradeSpec):
            return value
        if isinstance(value, str):
            return cls(upgrade_to=value)
        if isinstance(value, dict):
            upgrade_to = value.get("upgradeTo", value.get("upgrade_to"))
            if not isinstance(upgrade_to, str) or not upgrade_to:
                raise ValueError(f"Remediation entry has no target version: {value!r}")
            # "django@2.0.1" style targets carry the package name
            if "@" in upgrade_to:
                upgrade_to = upgrade_to.rsplit("@", 1)[1]
            return cls(
                upgrade_to=upgrade_to,
                vulns=list(value.get("vulns", [])),
            )
        raise ValueError(f"Unsupported remediation entry: {value!r}")


@dataclass
class RemediationPlan:
    """Upgrade and pin decisions for one project.

    Both mappings are keyed by ``"<package>@<currentVersionOrRange>"``.
    """

    upgrade: dict[str, UpgradeSpec] = field(default_factory=dict)
    pin: dict[str, UpgradeSpec] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemediationPlan:
        return cls(
            upgrade={k: UpgradeSpec.from_value(v) for k, v in (data.get("upgrade") or {}).items()},
            pin={k: UpgradeSpec.from_value(v) for k, v in (data.get("pin") or {}).items()},
        )

    @property
    def is_empty(self) -> bool:
        return not self.upgrade and not self.pin


@dataclass(frozen=True)
class FixableUnit:
    """One scanned project ready for patching."""

    target_file: str | None
    plan: RemediationPlan | None
    workspace: Workspace | None
    project_name: str = ""

    @property
    def label(self) -> str:
        return self.project_name or self.target_file or "<unknown>"


@dataclass
class FixOptions:
    """Options for a fix run."""

    dry_run: bool = False
    pin_comment: str | None = None


@dataclass
class ChangeRecord:
    """A single change (or refused change) made to a manifest."""

    success: bool
    user_message: str
    file: str | None = None
    reason: str = ""
    # vulnerability ids the change remediates
    vulns: list[str] = field(default_factory=list)


class FixPhase(enum.Enum):
    UPGRADING = "upgrading"
    PINNING = "pinning"
    DONE = "done"


@dataclass
class FixOutcome:
    """What the orchestrator did for one unit."""

    changes: list[ChangeRecord] = field(default_factory=list)
    # normalized path -> change log accumulated when the file was processed
    fixed_meta: dict[str, list[ChangeRecord]] = field(default_factory=dict)
    # normalized paths whose content this run changed
    modified_paths: list[str] = field(default_factory=list)


@dataclass
class SucceededUnit:
    original: FixableUnit
    changes: list[ChangeRecord] = field(default_factory=list)


@dataclass
class FailedUnit:
    original: FixableUnit
    error: Exception

    @property
    def user_message(self) -> str:
        return getattr(self.error, "user_message", None) or str(self.error) or type(self.error).__name__


@dataclass
class SkippedUnit:
    original: FixableUnit
    user_message: str = ""


@dataclass
class BatchResult:
    """Partition of all units handled by a fix run."""

    succeeded: list[SucceededUnit] = field(default_factory=list)
    failed: list[FailedUnit] = field(default_factory=list)
    skipped: list[SkippedUnit] = field(default_factory=list)

    def merge(self, other: BatchResult) -> None:
        self.succeeded.extend(other.succeeded)
        self.failed.extend(other.failed)
        self.skipped.extend(other.skipped)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed) + len(self.skipped)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to plain data for JSON output."""
        return {
            "succeeded": [
                {
                    "targetFile": s.original.target_file,
                    "changes": [
                        {
                            "success": c.success,
                            "userMessage": c.user_message,
                            "file": c.file,
                            "vulns": c.vulns,
                        }
                        for c in s.changes
                    ],
                }
                for s in self.succeeded
            ],
            "failed": [
                {
                    "targetFile": f.original.target_file,
                    "error": getattr(f.error, "error_code", type(f.error).__name__),
                    "userMessage": f.user_message,
                }
                for f in self.failed
            ],
            "skipped": [
                {"targetFile": s.original.target_file, "userMessage": s.user_message}
                for s in self.skipped
            ],
        }

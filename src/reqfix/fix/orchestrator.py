"""Remediation orchestrator — applies one unit's plan across its manifests.

A run walks a fixed sequence of phases:

``UPGRADING``
    every file in the manifest's provenance gets its existing lines bumped
    with the plan's ``upgrade`` entries; no lines are added.
``PINNING``
    ``pin`` entries not already satisfied by an upgrade go into one file,
    the scanned manifest or its constraints file, as rewritten or new lines.
``DONE``
    nothing changed is an error; otherwise rewritten files are written back
    unless this is a dry run.

File contents rewritten by an earlier phase are kept in memory, so later
phases and dry runs see the same text.
"""

from __future__ import annotations

import logging
import posixpath

from reqfix.core.errors import (
    MissingFileNameError,
    MissingRemediationDataError,
    MissingWorkspaceError,
    NoFixesCouldBeAppliedError,
)
from reqfix.core.models import (
    ChangeRecord,
    FixableUnit,
    FixOptions,
    FixOutcome,
    FixPhase,
    RemediationPlan,
    UpgradeSpec,
)
from reqfix.core.workspace import Workspace, join_path, normalize_path
from reqfix.fix.pinning import select_file_for_pinning
from reqfix.manifest.names import standardize_package_key
from reqfix.manifest.parser import parse_requirements
from reqfix.manifest.patcher import PatchResult, update_dependencies
from reqfix.manifest.provenance import ProvenanceMap, extract_provenance

logger = logging.getLogger(__name__)

PHASES = (FixPhase.UPGRADING, FixPhase.PINNING)


def get_required_data(unit: FixableUnit) -> tuple[RemediationPlan, str, Workspace]:
    """Return plan, target file and workspace, or raise for the first one missing."""
    if unit.plan is None:
        raise MissingRemediationDataError()
    if not unit.target_file:
        raise MissingFileNameError()
    if unit.workspace is None:
        raise MissingWorkspaceError()
    return unit.plan, unit.target_file, unit.workspace


def filter_out_applied_upgrades(
    plan: RemediationPlan,
    applied_remediation: list[str],
) -> dict[str, UpgradeSpec]:
    """Pin entries left over once upgrades matching the same package@version ran."""
    applied = {standardize_package_key(key) for key in applied_remediation}
    return {
        key: spec for key, spec in plan.pin.items()
        if standardize_package_key(key) not in applied
    }


class RemediationRun:
    """Applies one unit's remediation plan."""

    def __init__(
        self,
        unit: FixableUnit,
        options: FixOptions | None = None,
        workspace: Workspace | None = None,
    ):
        self.plan, self.target_file, self.workspace = get_required_data(unit)
        # all I/O goes through the override when one is given
        self.workspace = workspace or self.workspace
        self.options = options or FixOptions()
        self.entry_path = normalize_path(self.target_file)
        self.directory, self.base = posixpath.split(self.entry_path)

        self.phase: FixPhase | None = None
        self.provenance: ProvenanceMap = {}
        self.pending: dict[str, str] = {}
        self.applied_upgrades: list[str] = []
        self.upgrade_changes: list[ChangeRecord] = []
        self.pin_changes: list[ChangeRecord] = []
        self.fixed_meta: dict[str, list[ChangeRecord]] = {}

    @property
    def changes(self) -> list[ChangeRecord]:
        return self.upgrade_changes + self.pin_changes

    async def run(self) -> FixOutcome:
        self.provenance = await extract_provenance(self.workspace, self.directory, self.base)

        for phase in PHASES:
            self.phase = phase
            logger.debug("%s: %s", self.entry_path, phase.value)
            if phase is FixPhase.UPGRADING:
                self.apply_upgrades()
            else:
                await self.apply_pins()
        self.phase = FixPhase.DONE

        if not any(change.success for change in self.changes):
            logger.debug("Manifest %s has not changed", self.entry_path)
            raise NoFixesCouldBeAppliedError()

        await self.write_changes()
        return FixOutcome(
            changes=self.changes,
            fixed_meta=self.fixed_meta,
            modified_paths=list(self.pending),
        )

    def apply_upgrades(self) -> None:
        """Bump existing lines in every file of the provenance."""
        for file_name, parsed in self.provenance.items():
            full_path = join_path(self.directory, file_name)
            result = update_dependencies(
                parsed,
                self.plan.upgrade,
                direct_upgrades_only=True,
                reference_file=self._reference(full_path),
            )
            self._record(full_path, result)
            self.applied_upgrades.extend(result.applied_remediation)
            self.upgrade_changes.extend(result.changes)
            self.fixed_meta[full_path] = list(self.upgrade_changes)

    async def apply_pins(self) -> None:
        """Pin whatever the upgrades did not cover."""
        to_pin = filter_out_applied_upgrades(self.plan, self.applied_upgrades)
        if not to_pin:
            logger.debug("Nothing left to pin for %s", self.entry_path)
            return

        pin_target = await select_file_for_pinning(self.workspace, self.entry_path, self.pending)
        full_path = join_path(self.directory, pin_target.file_name)
        result = update_dependencies(
            parse_requirements(pin_target.file_content),
            to_pin,
            direct_upgrades_only=False,
            reference_file=self._reference(full_path),
            pin_comment=self.options.pin_comment,
        )
        self._record(full_path, result)
        self.pin_changes.extend(result.changes)
        self.fixed_meta.setdefault(full_path, []).extend(result.changes)

    async def write_changes(self) -> None:
        if self.options.dry_run:
            logger.debug("Skipping writing %d file(s) in dry-run mode", len(self.pending))
            return
        for path, content in self.pending.items():
            logger.debug("Writing changes to %s", path)
            await self.workspace.write_file(path, content)

    def _record(self, full_path: str, result: PatchResult) -> None:
        for change in result.changes:
            change.file = full_path
        if any(change.success for change in result.changes):
            self.pending[full_path] = result.updated_manifest

    def _reference(self, full_path: str) -> str | None:
        return full_path if full_path != self.entry_path else None


async def apply_all_fixes(
    unit: FixableUnit,
    options: FixOptions | None = None,
    workspace: Workspace | None = None,
) -> FixOutcome:
    """Apply a unit's upgrades then pins, returning the changes and touched files.

    ``workspace`` replaces the unit's own workspace for reads and writes.
    """
    return await RemediationRun(unit, options, workspace).run()

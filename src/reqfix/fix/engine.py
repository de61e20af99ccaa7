"""Fix Engine — runs remediation over a batch of fixable units."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import replace
from itertools import groupby

from reqfix.core.config import ReqfixConfig
from reqfix.core.models import (
    BatchResult,
    ChangeRecord,
    FailedUnit,
    FixableUnit,
    FixOptions,
    SucceededUnit,
)
from reqfix.core.workspace import OverlayWorkspace, Workspace, normalize_path
from reqfix.fix.cache import FixedFileCache
from reqfix.fix.eligibility import partition_by_fixable
from reqfix.fix.orchestrator import apply_all_fixes

logger = logging.getLogger(__name__)


class BatchWrites:
    """File content computed during a batch, held until every unit has run.

    Each unit reads and writes through an overlay of its workspace, so later
    units see what earlier ones changed whether or not this is a dry run,
    and a file shared by several units is written once.
    """

    def __init__(self):
        self._overlays: dict[int, OverlayWorkspace] = {}
        # (workspace id, normalized path) -> units that changed the file
        self._writers: dict[tuple[int, str], list[FixableUnit]] = {}

    def overlay_for(self, workspace: Workspace) -> OverlayWorkspace:
        key = id(workspace)
        if key not in self._overlays:
            self._overlays[key] = OverlayWorkspace(workspace)
        return self._overlays[key]

    def record(self, unit: FixableUnit, paths: list[str]) -> None:
        for path in paths:
            self._writers.setdefault((id(unit.workspace), path), []).append(unit)

    async def flush(self) -> list[tuple[FixableUnit, Exception]]:
        """Write every buffered file; return the units whose files failed."""
        failures: list[tuple[FixableUnit, Exception]] = []
        for key, overlay in self._overlays.items():
            for path, error in (await overlay.flush()).items():
                logger.debug("Failed to write %s: %s", path, error)
                for unit in self._writers.get((key, path), []):
                    if all(unit is not failed for failed, _ in failures):
                        failures.append((unit, error))
        return failures


class FixEngine:
    """Applies remediation plans to requirements files, one unit at a time.

    Units are processed sequentially so that every unit sees the files
    rewritten by the units before it, across all directories of the batch.
    Files are written once, after the last unit, unless this is a dry run.
    """

    def __init__(
        self,
        options: FixOptions | None = None,
        config: ReqfixConfig | None = None,
    ):
        self.config = config or ReqfixConfig()
        self.options = options or FixOptions(
            dry_run=self.config.fix.dry_run,
            pin_comment=self.config.fix.pin_comment,
        )
        # runs always write into the batch overlay; the engine decides on disk
        self._run_options = replace(self.options, dry_run=False)

    async def fix(self, units: list[FixableUnit]) -> BatchResult:
        """Fix every supported unit and partition the outcome."""
        logger.debug("Preparing to fix %d requirements.txt project(s)", len(units))
        result = BatchResult()

        partition = partition_by_fixable(units, self.config.manifest)
        result.skipped.extend(partition.skipped)

        fixed_cache = FixedFileCache()
        writes = BatchWrites()
        for directory, dir_units in group_by_directory(partition.fixable):
            logger.debug("Fixing units in directory %r", directory)
            dir_result, dir_cache = await self.fix_all(dir_units, fixed_cache, writes)
            fixed_cache = fixed_cache.merge(dir_cache)
            result.merge(dir_result)
        logger.debug("%d file(s) fixed across the batch", len(fixed_cache))

        if self.options.dry_run:
            logger.debug("Skipping writing files in dry-run mode")
        else:
            for unit, error in await writes.flush():
                result.succeeded = [s for s in result.succeeded if s.original is not unit]
                result.failed.append(FailedUnit(original=unit, error=error))

        return result

    async def fix_all(
        self,
        units: list[FixableUnit],
        fixed_cache: FixedFileCache,
        writes: BatchWrites | None = None,
    ) -> tuple[BatchResult, FixedFileCache]:
        """Fix units of one directory, updating and returning ``fixed_cache``."""
        result = BatchResult()
        for unit in units:
            try:
                result.succeeded.append(await self.fix_one(unit, fixed_cache, writes))
            except Exception as e:
                logger.debug("Failed to fix %s: %s", unit.label, e)
                result.failed.append(FailedUnit(original=unit, error=e))
        return result, fixed_cache

    async def fix_one(
        self,
        unit: FixableUnit,
        fixed_cache: FixedFileCache,
        writes: BatchWrites | None = None,
    ) -> SucceededUnit:
        """Fix a single unit, or report it fixed through an earlier one.

        Without ``writes`` the unit's files are written straight away, unless
        this is a dry run.
        """
        if unit.target_file and unit.target_file in fixed_cache:
            entry = fixed_cache.get(unit.target_file)
            logger.debug("%s already fixed through %s", unit.target_file, entry.fixed_in)
            return SucceededUnit(
                original=unit,
                changes=[ChangeRecord(
                    success=True,
                    user_message=f"Fixed through {entry.fixed_in}",
                    file=normalize_path(unit.target_file),
                )],
            )

        if writes is not None and unit.workspace is not None:
            outcome = await apply_all_fixes(
                unit, self._run_options, writes.overlay_for(unit.workspace)
            )
            writes.record(unit, outcome.modified_paths)
        else:
            outcome = await apply_all_fixes(unit, self.options)
        # apply_all_fixes only succeeds with a target file
        fixed_cache.mark_fixed(outcome.fixed_meta, fixed_in=unit.target_file or "")
        return SucceededUnit(original=unit, changes=outcome.changes)


def group_by_directory(units: list[FixableUnit]) -> list[tuple[str, list[FixableUnit]]]:
    """Group units by the directory of their target file, directories sorted.

    Units without a target file form their own group so they still reach
    the fixer and fail with a clear error.
    """
    def directory_of(unit: FixableUnit) -> str:
        return posixpath.dirname(normalize_path(unit.target_file or ""))

    ordered = sorted(units, key=directory_of)
    return [(directory, list(group)) for directory, group in groupby(ordered, key=directory_of)]

"""Decide which units the requirements fixer can handle at all."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field

from reqfix.core.config import ManifestConfig
from reqfix.core.models import FixableUnit, SkippedUnit
from reqfix.core.workspace import normalize_path

logger = logging.getLogger(__name__)


@dataclass
class Partition:
    fixable: list[FixableUnit] = field(default_factory=list)
    skipped: list[SkippedUnit] = field(default_factory=list)


def is_supported(unit: FixableUnit, config: ManifestConfig | None = None) -> tuple[bool, str]:
    """Return ``(supported, reason)``.

    Units missing a plan, file name or workspace count as supported so that
    the fixer reports exactly what is missing.
    """
    config = config or ManifestConfig()
    if unit.plan is not None and unit.plan.is_empty:
        return False, "There is no actionable remediation to apply"
    if unit.target_file:
        path = normalize_path(unit.target_file)
        suffix = posixpath.splitext(path)[1].lower()
        if suffix not in {s.lower() for s in config.suffixes}:
            return False, f"{posixpath.basename(path)} is not a requirements file"
    return True, ""


def partition_by_fixable(
    units: list[FixableUnit],
    config: ManifestConfig | None = None,
) -> Partition:
    partition = Partition()
    for unit in units:
        supported, reason = is_supported(unit, config)
        if supported:
            partition.fixable.append(unit)
        else:
            logger.debug("Skipping %s: %s", unit.label, reason)
            partition.skipped.append(SkippedUnit(original=unit, user_message=reason))
    return partition

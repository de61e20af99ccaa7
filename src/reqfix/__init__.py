"""reqfix — apply vulnerability remediation to requirements files."""

from reqfix._version import __version__
from reqfix.core.models import (
    BatchResult,
    ChangeRecord,
    FixableUnit,
    FixOptions,
    RemediationPlan,
    UpgradeSpec,
)
from reqfix.core.workspace import LocalWorkspace, Workspace
from reqfix.fix.engine import FixEngine

__all__ = [
    "__version__",
    "BatchResult",
    "ChangeRecord",
    "FixableUnit",
    "FixOptions",
    "RemediationPlan",
    "UpgradeSpec",
    "LocalWorkspace",
    "Workspace",
    "FixEngine",
]

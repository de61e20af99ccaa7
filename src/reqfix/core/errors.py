"""Error types raised while applying remediation to a fixable unit."""

from __future__ import annotations


class FixError(Exception):
    """Base class for all reqfix errors.

    ``error_code`` is stable and machine-readable; ``user_message`` is what
    the CLI shows next to a failed unit.
    """

    error_code: str = "FIX_ERROR"
    default_message: str = "Failed to apply fixes"

    def __init__(self, message: str | None = None):
        self.user_message = message or self.default_message
        super().__init__(self.user_message)


class MissingRemediationDataError(FixError):
    error_code = "MISSING_REMEDIATION_DATA"
    default_message = "Remediation data is required to apply fixes"


class MissingFileNameError(FixError):
    error_code = "MISSING_FILE_NAME"
    default_message = "Target file name is required to apply fixes"


class NoFixesCouldBeAppliedError(FixError):
    error_code = "NO_FIXES_COULD_BE_APPLIED"
    default_message = "No fixes could be applied"


class MissingWorkspaceError(NoFixesCouldBeAppliedError):
    error_code = "NO_WORKSPACE"
    default_message = "No workspace available to read or write files"


class ProvenanceCycleError(FixError):
    error_code = "PROVENANCE_CYCLE"
    default_message = "Requirements files include each other in a cycle"

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(
            f"Requirements files include each other in a cycle: {' -> '.join(cycle)}"
        )


class PlanFormatError(FixError):
    error_code = "INVALID_PLAN"
    default_message = "Remediation plan document is malformed"

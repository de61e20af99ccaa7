"""Rewrite dependency lines of a parsed manifest to remediated versions."""

from __future__ import annotations

from dataclasses import dataclass, field

from packaging.version import InvalidVersion, Version

from reqfix.core.models import ChangeRecord, UpgradeSpec
from reqfix.manifest.names import (
    ANY_VERSION,
    split_package_key,
    standardize_package_name,
)
from reqfix.manifest.parser import ManifestLine, ParsedManifest

# operators that still mean the right thing with a new version behind them
_KEPT_OPERATORS = {"==", "===", "~=", ">="}


@dataclass
class PatchResult:
    updated_manifest: str
    changes: list[ChangeRecord] = field(default_factory=list)
    # remediation keys that matched a line in this file
    applied_remediation: list[str] = field(default_factory=list)


def update_dependencies(
    manifest: ParsedManifest,
    remediation: dict[str, UpgradeSpec],
    direct_upgrades_only: bool,
    reference_file: str | None = None,
    pin_comment: str | None = None,
) -> PatchResult:
    """Apply remediation to ``manifest`` without doing any I/O.

    Lines already present are upgraded in place. Unless
    ``direct_upgrades_only`` is set, entries that match no line are pinned:
    an existing line for the package is rewritten to ``==<version>``, or a
    new line is appended. ``reference_file`` is mentioned in change messages
    when the file is not the one that was scanned.
    """
    replacements, changes, applied = _generate_upgrades(manifest, remediation, reference_file)
    additions: list[str] = []

    if not direct_upgrades_only:
        pin_replacements, additions, pin_changes, pinned = _generate_pins(
            manifest, remediation, applied, replacements, reference_file, pin_comment
        )
        replacements.update(pin_replacements)
        changes.extend(pin_changes)
        applied.extend(pinned)

    return PatchResult(
        updated_manifest=manifest.render(replacements, additions),
        changes=changes,
        applied_remediation=applied,
    )


def _generate_upgrades(
    manifest: ParsedManifest,
    remediation: dict[str, UpgradeSpec],
    reference_file: str | None,
) -> tuple[dict[int, str], list[ChangeRecord], list[str]]:
    replacements: dict[int, str] = {}
    changes: list[ChangeRecord] = []
    applied: list[str] = []
    suffix = f" (upgraded in {reference_file})" if reference_file else ""

    for line in manifest.requirements:
        if line.url:
            continue
        key = _matching_key(line, remediation)
        if key is None:
            continue
        if key not in applied:
            applied.append(key)

        target = remediation[key].upgrade_to
        new_specifier = _upgraded_specifier(line, target)
        if _already_satisfied(line, new_specifier, target):
            continue

        replacements[line.index] = line.with_specifier(new_specifier)
        changes.append(ChangeRecord(
            success=True,
            user_message=f"Upgraded {line.name} from {_current_version(line, key)} to {target}{suffix}",
            vulns=list(remediation[key].vulns),
        ))

    return replacements, changes, applied


def _generate_pins(
    manifest: ParsedManifest,
    remediation: dict[str, UpgradeSpec],
    applied: list[str],
    replacements: dict[int, str],
    reference_file: str | None,
    pin_comment: str | None,
) -> tuple[dict[int, str], list[str], list[ChangeRecord], list[str]]:
    pin_replacements: dict[int, str] = {}
    additions: list[str] = []
    changes: list[ChangeRecord] = []
    pinned: list[str] = []
    # packages whose lines were matched by the upgrade pass
    handled = {standardize_package_name(split_package_key(key)[0]) for key in applied}
    suffix = f" (pinned in {reference_file})" if reference_file else ""

    for key, spec in remediation.items():
        if key in applied:
            continue
        name, version = split_package_key(key)
        standardized = standardize_package_name(name)
        if standardized in handled:
            # matched by the upgrade pass or pinned by an earlier entry
            pinned.append(key)
            continue
        handled.add(standardized)

        existing = [
            line for line in manifest.find_requirements(name)
            if line.index not in replacements and line.index not in pin_replacements
        ]
        if existing and existing[0].url:
            changes.append(ChangeRecord(
                success=False,
                user_message=f"Failed to pin {name} to {spec.upgrade_to}",
                reason=f"{existing[0].name} is installed from a URL",
                vulns=list(spec.vulns),
            ))
            continue

        if existing:
            line = existing[0]
            if _already_satisfied(line, f"=={spec.upgrade_to}", spec.upgrade_to):
                pinned.append(key)
                continue
            pin_replacements[line.index] = line.with_specifier(f"=={spec.upgrade_to}")
            from_version = line.version or line.specifier or version
        else:
            pin_line = f"{name}=={spec.upgrade_to}"
            if pin_comment:
                pin_line = f"{pin_line}  # {pin_comment}"
            additions.append(pin_line)
            from_version = version

        pinned.append(key)
        changes.append(ChangeRecord(
            success=True,
            user_message=f"Pinned {name} from {from_version} to {spec.upgrade_to}{suffix}",
            vulns=list(spec.vulns),
        ))

    return pin_replacements, additions, changes, pinned


def _matching_key(line: ManifestLine, remediation: dict[str, UpgradeSpec]) -> str | None:
    """Find the remediation key for a line, preferring exact versions over ``*``."""
    wildcard = None
    for key in remediation:
        name, version = split_package_key(key)
        if standardize_package_name(name) != line.standardized_name:
            continue
        if version == ANY_VERSION:
            wildcard = wildcard or key
        elif _version_matches(line, version):
            return key
    return wildcard


def _version_matches(line: ManifestLine, version: str) -> bool:
    if line.specifier and line.specifier.replace(" ", "") == version.replace(" ", ""):
        return True
    if not line.version:
        return False
    if line.version == version:
        return True
    try:
        return Version(line.version) == Version(version)
    except InvalidVersion:
        return False


def _upgraded_specifier(line: ManifestLine, target: str) -> str:
    if line.operator in _KEPT_OPERATORS:
        return f"{line.operator}{target}"
    return f"=={target}"


def _already_satisfied(line: ManifestLine, new_specifier: str, target: str) -> bool:
    if line.specifier.replace(" ", "") == new_specifier:
        return True
    if line.operator in _KEPT_OPERATORS and line.version:
        try:
            return Version(line.version) == Version(target)
        except InvalidVersion:
            return False
    return False


def _current_version(line: ManifestLine, key: str) -> str:
    if line.version:
        return line.version
    if line.specifier:
        return line.specifier
    return split_package_key(key)[1]

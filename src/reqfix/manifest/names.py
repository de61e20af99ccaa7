"""Package name standardization and ``name@version`` remediation keys."""

from __future__ import annotations

from packaging.utils import canonicalize_name

ANY_VERSION = "*"


def standardize_package_name(name: str) -> str:
    """PEP 503 normalization: case-insensitive, ``-``/``_``/``.`` collapsed."""
    return canonicalize_name(name.strip())


def split_package_key(key: str) -> tuple[str, str]:
    """Split ``"Django@1.6.1"`` into ``("Django", "1.6.1")``.

    A key without a version part matches any version.
    """
    name, sep, version = key.partition("@")
    version = version.strip()
    if not sep or not version:
        version = ANY_VERSION
    return name.strip(), version


def standardize_package_key(key: str) -> str:
    name, version = split_package_key(key)
    return f"{standardize_package_name(name)}@{version}"

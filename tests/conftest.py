"""Shared fixtures for esmc-guard tests.

Provides temporary project roots with a ``.claude`` marker directory,
factories for license and blessing files, and a signed package tree.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from esmcguard.core.integrity import sign_package

BUILD_VERSION = "3.13.0"

PACKAGE_FILES: dict[str, bytes] = {
    "index.js": b"module.exports = require('./lib/core');\n",
    "lib/core.js": b"exports.run = () => 'ok';\n",
    "README.md": b"# ESMC\n",
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ambient ESMC_* variables from leaking into tests."""
    for name in (
        "ESMC_VERBOSE",
        "ESMC_PACKAGE_SIGNATURE_KEY",
        "ESMC_PROJECT_ROOT",
        "ESMC_IO_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """A project directory containing an empty ``.claude`` marker."""
    root = tmp_path / "project"
    (root / ".claude").mkdir(parents=True)
    return root


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as JSON, or verbatim when it is already a string."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = data if isinstance(data, str) else json.dumps(data, indent=2)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def license_data() -> dict[str, Any]:
    """A minimal valid license document (PRO, no blessing, no expiry)."""
    return {
        "email": "dev@example.com",
        "tier": "PRO",
        "displayName": "Dev",
        "issuedAt": "2026-01-01T00:00:00.000Z",
    }


@pytest.fixture
def write_license(project_root: Path) -> Callable[[Any], Path]:
    """Factory writing the license file under ``project_root``."""

    def _write(data: Any) -> Path:
        return write_json(project_root / ".claude" / ".esmc-license.json", data)

    return _write


@pytest.fixture
def write_blessing(project_root: Path) -> Callable[[Any], Path]:
    """Factory writing the guardian blessing file under ``project_root``."""

    def _write(data: Any) -> Path:
        return write_json(
            project_root / ".claude" / ".esmc-guardian-blessing.json", data
        )

    return _write


@pytest.fixture
def package_root(tmp_path: Path) -> Path:
    """An unsigned package tree with ``PACKAGE_FILES``."""
    root = tmp_path / "dist"
    for relative, content in PACKAGE_FILES.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return root


@pytest.fixture
def signed_package(package_root: Path) -> Path:
    """``package_root`` with a manifest and signature from the default key."""
    sign_package(
        package_root,
        sorted(PACKAGE_FILES),
        build_version=BUILD_VERSION,
        architecture="chaos",
        build_date="2026-01-01T00:00:00.000Z",
    )
    return package_root

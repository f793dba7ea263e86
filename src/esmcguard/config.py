"""Configuration: file locations, defaults, and environment settings.

Every path the tools read is fixed relative to a project (or package)
root. The root itself is located by searching upward for the marker
directory (see ``esmcguard.core.discovery``) unless one is given
explicitly.

Environment variables:
    ESMC_VERBOSE               — truthy value enables degraded-state warnings.
    ESMC_PACKAGE_SIGNATURE_KEY — replaces the default HMAC passphrase.
    ESMC_PROJECT_ROOT          — skip discovery and use this root.
    ESMC_IO_TIMEOUT            — deadline in seconds for the checksum pass.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

# ---------------------------------------------------------------------------
# File layout
# ---------------------------------------------------------------------------

MARKER_DIR: str = ".claude"
LICENSE_FILENAME: str = ".esmc-license.json"
BLESSING_FILENAME: str = ".esmc-guardian-blessing.json"
MANIFEST_FILENAME: str = ".integrity-manifest.json"
SIGNATURE_FILENAME: str = ".package-signature"

# Upward search stops after this many parent directories.
MAX_ROOT_HOPS: int = 10

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_IO_TIMEOUT: float = 30.0
DEFAULT_MAX_WORKERS: int = 8

ENV_VERBOSE = "ESMC_VERBOSE"
ENV_SIGNATURE_KEY = "ESMC_PACKAGE_SIGNATURE_KEY"
ENV_PROJECT_ROOT = "ESMC_PROJECT_ROOT"
ENV_IO_TIMEOUT = "ESMC_IO_TIMEOUT"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def license_path(root: Path) -> Path:
    """Return the license record path under *root*."""
    return root / MARKER_DIR / LICENSE_FILENAME


def blessing_path(root: Path) -> Path:
    """Return the guardian blessing path under *root*."""
    return root / MARKER_DIR / BLESSING_FILENAME


def manifest_path(root: Path) -> Path:
    """Return the integrity manifest path under *root*."""
    return root / MARKER_DIR / MANIFEST_FILENAME


def signature_path(root: Path) -> Path:
    """Return the package signature path under *root*."""
    return root / SIGNATURE_FILENAME


def is_truthy(value: str | None) -> bool:
    """Interpret an environment variable value as a boolean flag."""
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    """Runtime settings shared by the validator, verifier, and CLI.

    Attributes:
        verbose: Emit warnings for degraded (non-fatal) conditions.
        signature_secret: Passphrase replacing the build-derived HMAC
            passphrase, or None to use the default derivation.
        project_root: Explicit root, or None to discover one.
        io_timeout: Deadline in seconds for the whole checksum pass.
        max_workers: Thread pool size for per-file hashing.
    """

    verbose: bool = False
    signature_secret: str | None = None
    project_root: Path | None = None
    io_timeout: float = DEFAULT_IO_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ`` (for tests).

        Returns:
            A populated ``Settings``. Unparseable timeouts fall back to
            ``DEFAULT_IO_TIMEOUT``.
        """
        env = os.environ if environ is None else environ
        root = env.get(ENV_PROJECT_ROOT) or None
        timeout = DEFAULT_IO_TIMEOUT
        raw_timeout = env.get(ENV_IO_TIMEOUT)
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                timeout = DEFAULT_IO_TIMEOUT
        return cls(
            verbose=is_truthy(env.get(ENV_VERBOSE)),
            signature_secret=env.get(ENV_SIGNATURE_KEY) or None,
            project_root=Path(root) if root else None,
            io_timeout=timeout,
        )

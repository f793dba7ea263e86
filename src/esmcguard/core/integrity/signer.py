"""Package signing: the producer side of the integrity manifest.

``sign_package`` hashes a list of package files, writes the integrity
manifest, and writes the HMAC signature beside the package root. The
manifest goes through ``canonical_json`` exactly as the verifier does, so
anything signed here verifies with ``PackageVerifier`` using the same
secret.

Usage::

    files = collect_files(root, ["**/*.js", "package.json"])
    sign_package(root, files, build_version="3.13.0", architecture="chaos")
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from esmcguard.config import manifest_path, signature_path
from esmcguard.core.integrity.models import IntegrityManifest, PackageSignature
from esmcguard.core.integrity.signing import (
    compute_signature,
    derive_key,
    sha256_file,
)
from esmcguard.core.integrity.verifier import package_file
from esmcguard.exceptions import IntegrityError

logger = logging.getLogger(__name__)


def collect_files(root: Path, patterns: list[str]) -> list[str]:
    """Expand glob *patterns* under *root* into sorted relative paths.

    Directories, the manifest, and the signature file are never included.
    Paths use forward slashes regardless of platform.

    Raises:
        IntegrityError: If a pattern is empty or absolute.
    """
    excluded = {manifest_path(root).resolve(), signature_path(root).resolve()}
    found: set[str] = set()
    for pattern in patterns:
        if not pattern or Path(pattern).is_absolute():
            raise IntegrityError(f"Invalid pattern {pattern!r}: must be relative")
        try:
            matches = list(root.glob(pattern))
        except (ValueError, NotImplementedError) as exc:
            raise IntegrityError(f"Invalid pattern {pattern!r}: {exc}") from exc
        for path in matches:
            if not path.is_file() or path.resolve() in excluded:
                continue
            found.add(path.relative_to(root).as_posix())
    return sorted(found)


def build_manifest(
    root: Path,
    files: list[str],
    build_version: str,
    architecture: str,
    build_date: str | None = None,
) -> IntegrityManifest:
    """Hash *files* under *root* into a new manifest.

    Raises:
        IntegrityError: If a listed file does not exist or cannot be read.
    """
    checksums: dict[str, str] = {}
    for relative in files:
        path = package_file(root, relative)
        if not path.is_file():
            raise IntegrityError(f"Cannot sign missing file: {relative}")
        try:
            checksums[relative] = sha256_file(path)
        except OSError as exc:
            raise IntegrityError(f"Cannot read {relative}: {exc}") from exc

    return IntegrityManifest(
        build_version=build_version,
        build_date=build_date or datetime.now(timezone.utc).isoformat(),
        architecture=architecture,
        total_files=len(checksums),
        checksums=checksums,
    )


def sign_package(
    root: Path,
    files: list[str],
    build_version: str,
    architecture: str,
    secret: str | None = None,
    build_date: str | None = None,
) -> tuple[IntegrityManifest, PackageSignature]:
    """Write a signed integrity manifest for the package at *root*.

    Args:
        root: Package root directory.
        files: Paths relative to *root* to include.
        build_version: Build identifier recorded in the manifest.
        architecture: Architecture label recorded in the manifest.
        secret: Passphrase override; must match the verifier's.
        build_date: ISO-8601 build timestamp (defaults to now).

    Returns:
        The written manifest and signature.

    Raises:
        IntegrityError: If a file is missing or an output cannot be written.
    """
    manifest = build_manifest(root, files, build_version, architecture, build_date)
    document = manifest.to_dict()
    key = derive_key(build_version, secret)
    signature = PackageSignature(
        signature=compute_signature(document, key),
        signed_at=datetime.now(timezone.utc).isoformat(),
    )

    out_manifest = manifest_path(root)
    out_signature = signature_path(root)
    try:
        out_manifest.parent.mkdir(parents=True, exist_ok=True)
        out_manifest.write_text(json.dumps(document, indent=2), encoding="utf-8")
        out_signature.write_text(
            json.dumps(signature.to_dict(), indent=2), encoding="utf-8"
        )
    except OSError as exc:
        raise IntegrityError(f"Cannot write package signature: {exc}") from exc

    logger.info(
        "Signed %d files for build %s", manifest.total_files, build_version
    )
    return manifest, signature

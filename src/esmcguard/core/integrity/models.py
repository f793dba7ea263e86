"""Integrity data models — IntegrityManifest, PackageSignature, IntegrityReport.

``IntegrityManifest`` keeps the decoded JSON mapping it was built from
(``raw``) so that the signature is always recomputed over exactly the
document that was signed, in its on-disk key order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from esmcguard.exceptions import ManifestError

# ---------------------------------------------------------------------------
# IntegrityManifest
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IntegrityManifest:
    """Expected contents of a distributable package.

    Attributes:
        build_version: Build identifier; also feeds HMAC key derivation.
        build_date: ISO-8601 build timestamp.
        architecture: Free-form architecture label.
        total_files: Declared number of files (informational).
        checksums: Relative file path to expected SHA-256 hex digest.
        raw: The decoded JSON document, in on-disk key order.
    """

    build_version: str
    build_date: str
    architecture: str
    total_files: int
    checksums: dict[str, str]
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Any) -> IntegrityManifest:
        """Build a manifest from decoded JSON.

        Raises:
            ManifestError: If *data* is not an object, lacks a
                ``buildVersion``, or has no string-to-string
                ``checksums`` table.
        """
        if not isinstance(data, dict):
            raise ManifestError("manifest must be a JSON object")
        if data.get("buildVersion") is None:
            raise ManifestError("manifest has no buildVersion")
        checksums = data.get("checksums")
        if not isinstance(checksums, dict):
            raise ManifestError("manifest has no checksums table")
        for path, digest in checksums.items():
            if not isinstance(digest, str):
                raise ManifestError(f"checksum for {path!r} is not a string")

        total = data.get("totalFiles", len(checksums))
        try:
            total_files = int(total)
        except (TypeError, ValueError) as exc:
            raise ManifestError(f"totalFiles is not an integer: {total!r}") from exc

        return cls(
            build_version=str(data["buildVersion"]),
            build_date=str(data.get("buildDate", "")),
            architecture=str(data.get("architecture", "")),
            total_files=total_files,
            checksums=dict(checksums),
            raw=data,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the on-disk document.

        The decoded mapping is returned when the manifest was loaded from
        disk; otherwise fields are emitted in the signer's canonical order.
        """
        if self.raw:
            return self.raw
        return {
            "buildVersion": self.build_version,
            "buildDate": self.build_date,
            "architecture": self.architecture,
            "totalFiles": self.total_files,
            "checksums": dict(self.checksums),
        }


# ---------------------------------------------------------------------------
# PackageSignature
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageSignature:
    """HMAC-SHA256 over the canonical manifest, as stored beside the package."""

    signature: str
    algorithm: str = "hmac-sha256"
    signed_at: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> PackageSignature:
        """Build a signature record from decoded JSON.

        Raises:
            ManifestError: If *data* has no string ``signature`` field.
        """
        if not isinstance(data, dict) or not isinstance(data.get("signature"), str):
            raise ManifestError("package signature has no signature field")
        return cls(
            signature=data["signature"],
            algorithm=str(data.get("algorithm", "hmac-sha256")),
            signed_at=data.get("signedAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "signature": self.signature,
            "algorithm": self.algorithm,
        }
        if self.signed_at is not None:
            out["signedAt"] = self.signed_at
        return out


# ---------------------------------------------------------------------------
# IntegrityReport
# ---------------------------------------------------------------------------


@dataclass
class IntegrityReport:
    """Diagnostics from one package verification.

    Attributes:
        signature_valid: True once the manifest signature has matched.
        verified: Files whose digest matched, in manifest order.
        modified: Files present on disk with a different digest.
        missing: Files absent, unreadable, or not hashed before the
            deadline.
        error: Fatal problem that stopped verification early (missing or
            malformed manifest/signature, signature mismatch).
        manifest: The loaded manifest, when it could be parsed.
    """

    signature_valid: bool = False
    verified: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    error: str | None = None
    manifest: IntegrityManifest | None = None

    @property
    def is_valid(self) -> bool:
        """True iff the signature matched and every listed file verified."""
        return (
            self.error is None
            and self.signature_valid
            and not self.modified
            and not self.missing
        )

    def as_dict(self) -> dict[str, Any]:
        """JSON-serializable summary for ``--format json`` output."""
        manifest = self.manifest
        return {
            "valid": self.is_valid,
            "signature_valid": self.signature_valid,
            "error": self.error,
            "build_version": manifest.build_version if manifest else None,
            "build_date": manifest.build_date if manifest else None,
            "architecture": manifest.architecture if manifest else None,
            "expected_files": manifest.total_files if manifest else None,
            "verified_count": len(self.verified),
            "modified": list(self.modified),
            "missing": list(self.missing),
        }

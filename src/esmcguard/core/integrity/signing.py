"""Hashing, key derivation, and manifest signatures.

The package signature is ``HMAC-SHA256(key, canonical_json(manifest))``:

- **Key.** ``SHA256(passphrase)``. The passphrase is the externally
  supplied secret when one is configured, otherwise
  ``"ESMC-<buildVersion>-package-signature"``. Either way, key material
  passes through exactly one SHA-256 step.
- **Message.** Compact JSON of the manifest mapping with keys in their
  on-disk order and non-ASCII characters left as-is, byte-for-byte what
  ``JSON.stringify`` emits for the same document. Signer and verifier must
  both go through
  ``canonical_json``; any other serialization breaks every signature.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from pathlib import Path
from typing import Any

from esmcguard.exceptions import ManifestError

_CHUNK_SIZE = 1 << 16


def canonical_json(manifest: dict[str, Any]) -> bytes:
    """Serialize *manifest* to the exact bytes that are signed."""
    return json.dumps(
        manifest, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def default_passphrase(build_version: str) -> str:
    """Return the build-derived passphrase used when no secret is set."""
    return f"ESMC-{build_version}-package-signature"


def derive_key(build_version: str, secret: str | None = None) -> bytes:
    """Derive the HMAC key for a build.

    Args:
        build_version: The manifest's ``buildVersion``.
        secret: Override passphrase (``ESMC_PACKAGE_SIGNATURE_KEY``).

    Returns:
        32-byte SHA-256 digest of the effective passphrase.
    """
    passphrase = secret or default_passphrase(build_version)
    return hashlib.sha256(passphrase.encode("utf-8")).digest()


def compute_signature(manifest: dict[str, Any], key: bytes) -> str:
    """Return the hex HMAC-SHA256 of the canonical manifest."""
    return hmac.new(key, canonical_json(manifest), hashlib.sha256).hexdigest()


def signatures_match(expected: str, actual: str) -> bool:
    """Constant-time equality of two signature strings."""
    return hmac.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))


def sha256_file(path: Path) -> str:
    """Return the SHA-256 hex digest of the file at *path*.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def load_json_document(path: Path, what: str) -> Any:
    """Read and decode a JSON document.

    Args:
        path: File to read.
        what: Human-readable name used in error messages.

    Raises:
        ManifestError: If the file cannot be read or is not valid JSON.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"cannot read {what}: {exc}") from exc
    try:
        return json.loads(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise ManifestError(f"{what} is not valid JSON: {exc}") from exc

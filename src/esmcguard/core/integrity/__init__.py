"""Package integrity verification --- signed manifests and file checksums.

The package is split into focused submodules:

- ``models``: ``IntegrityManifest``, ``PackageSignature``, ``IntegrityReport``.
- ``signing``: canonical serialization, key derivation, HMAC, file hashing.
- ``verifier``: ``PackageVerifier`` (signature check, then checksum pass).
- ``signer``: ``sign_package`` and helpers that produce the manifest.

All public names are re-exported here.
"""

from esmcguard.core.integrity.models import (
    IntegrityManifest,
    IntegrityReport,
    PackageSignature,
)
from esmcguard.core.integrity.signer import build_manifest, collect_files, sign_package
from esmcguard.core.integrity.signing import (
    canonical_json,
    compute_signature,
    default_passphrase,
    derive_key,
    sha256_file,
)
from esmcguard.core.integrity.verifier import (
    MANIFEST_NOT_FOUND,
    SIGNATURE_MISMATCH,
    SIGNATURE_NOT_FOUND,
    PackageVerifier,
    verify_package,
)

__all__ = [
    "MANIFEST_NOT_FOUND",
    "SIGNATURE_MISMATCH",
    "SIGNATURE_NOT_FOUND",
    "IntegrityManifest",
    "IntegrityReport",
    "PackageSignature",
    "PackageVerifier",
    "build_manifest",
    "canonical_json",
    "collect_files",
    "compute_signature",
    "default_passphrase",
    "derive_key",
    "sha256_file",
    "sign_package",
    "verify_package",
]

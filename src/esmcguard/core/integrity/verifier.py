"""Package integrity verification.

``PackageVerifier`` checks a package root in two stages:

1. **Signature.** The manifest's HMAC is recomputed and compared with the
   stored signature. A mismatch stops verification: the checksum table
   of a forged manifest proves nothing.
2. **Checksums.** Every file listed in the manifest is hashed and compared
   with its expected digest. All entries are checked; missing and modified
   files are accumulated rather than short-circuiting.

Only files named in the manifest are examined. Extra files on disk are
not reported.

Hashing runs on daemon worker threads with gather semantics and a single
deadline for the whole pass. An entry that fails with an I/O error, or has
not finished by the deadline, counts as missing. Workers still blocked at
the deadline are abandoned and do not delay process exit. Nothing is
written.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from pathlib import Path

from esmcguard.config import (
    DEFAULT_IO_TIMEOUT,
    DEFAULT_MAX_WORKERS,
    manifest_path,
    signature_path,
)
from esmcguard.core.discovery import resolve_root
from esmcguard.core.integrity.models import (
    IntegrityManifest,
    IntegrityReport,
    PackageSignature,
)
from esmcguard.core.integrity.signing import (
    compute_signature,
    derive_key,
    load_json_document,
    sha256_file,
    signatures_match,
)
from esmcguard.exceptions import ManifestError

logger = logging.getLogger(__name__)

MANIFEST_NOT_FOUND = "Integrity manifest not found"
SIGNATURE_NOT_FOUND = "Package signature not found"
SIGNATURE_MISMATCH = "Signature mismatch: package may be tampered"

_VERIFIED = "verified"
_MODIFIED = "modified"
_MISSING = "missing"


def package_file(root: Path, relative: str) -> Path:
    """Resolve a manifest entry against *root*.

    Leading separators are stripped so that entries always stay relative
    to the package root.
    """
    return root / relative.lstrip("/\\")


class PackageVerifier:
    """Verify a package root against its signed integrity manifest.

    Example::

        verifier = PackageVerifier(Path("dist"))
        if not verifier.verify_package():
            raise SystemExit("do not deploy")

    Args:
        root_hint: Package root. Discovered from the current directory
            when None.
        secret: Passphrase override for HMAC key derivation.
        io_timeout: Deadline in seconds for the checksum pass, or None
            for no deadline.
        max_workers: Number of hashing threads.
    """

    def __init__(
        self,
        root_hint: Path | None = None,
        secret: str | None = None,
        io_timeout: float | None = DEFAULT_IO_TIMEOUT,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self.root = resolve_root(root_hint)
        self.secret = secret
        self.io_timeout = io_timeout
        self.max_workers = max(1, max_workers)

    @property
    def manifest_path(self) -> Path:
        return manifest_path(self.root)

    @property
    def signature_path(self) -> Path:
        return signature_path(self.root)

    def verify_package(self) -> bool:
        """Return True iff the package is safe to deploy."""
        return self.verify().is_valid

    def verify(self) -> IntegrityReport:
        """Run both verification stages and return the full report."""
        report = IntegrityReport()

        if not self.manifest_path.exists():
            report.error = MANIFEST_NOT_FOUND
            logger.info("%s: %s", MANIFEST_NOT_FOUND, self.manifest_path)
            return report
        if not self.signature_path.exists():
            report.error = SIGNATURE_NOT_FOUND
            logger.info("%s: %s", SIGNATURE_NOT_FOUND, self.signature_path)
            return report

        try:
            manifest = IntegrityManifest.from_dict(
                load_json_document(self.manifest_path, "integrity manifest")
            )
            report.manifest = manifest
            signature = PackageSignature.from_dict(
                load_json_document(self.signature_path, "package signature")
            )
        except ManifestError as exc:
            report.error = str(exc)
            logger.info("Verification aborted: %s", exc)
            return report

        key = derive_key(manifest.build_version, self.secret)
        expected = compute_signature(manifest.to_dict(), key)
        if not signatures_match(expected, signature.signature):
            report.error = SIGNATURE_MISMATCH
            logger.info("Signature mismatch for build %s", manifest.build_version)
            return report
        report.signature_valid = True

        self._check_checksums(manifest, report)
        return report

    # -- Checksums ------------------------------------------------------------

    def _check_entry(self, relative: str, expected: str) -> str:
        """Hash one manifest entry. Any path or I/O error means missing."""
        try:
            path = package_file(self.root, relative)
            if not path.is_file():
                return _MISSING
            actual = sha256_file(path)
        except (OSError, ValueError) as exc:
            logger.info("Cannot read %s: %s", relative, exc)
            return _MISSING
        return _VERIFIED if actual == expected else _MODIFIED

    def _hash_worker(
        self,
        work: queue.SimpleQueue[tuple[str, str]],
        results: queue.SimpleQueue[tuple[str, str]],
    ) -> None:
        while True:
            try:
                relative, expected = work.get_nowait()
            except queue.Empty:
                return
            results.put((relative, self._check_entry(relative, expected)))

    def _check_checksums(
        self, manifest: IntegrityManifest, report: IntegrityReport
    ) -> None:
        total = len(manifest.checksums)
        work: queue.SimpleQueue[tuple[str, str]] = queue.SimpleQueue()
        results: queue.SimpleQueue[tuple[str, str]] = queue.SimpleQueue()
        for entry in manifest.checksums.items():
            work.put(entry)

        # Daemon workers: a read stuck past the deadline must not keep the
        # process alive at exit.
        for n in range(min(self.max_workers, total)):
            threading.Thread(
                target=self._hash_worker,
                args=(work, results),
                name=f"esmc-hash-{n}",
                daemon=True,
            ).start()

        deadline = (
            None if self.io_timeout is None
            else time.monotonic() + self.io_timeout
        )
        outcomes: dict[str, str] = {}
        while len(outcomes) < total:
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                break
            try:
                relative, outcome = results.get(timeout=remaining)
            except queue.Empty:
                break
            outcomes[relative] = outcome

        # Unstarted entries are dropped so idle workers exit.
        while True:
            try:
                work.get_nowait()
            except queue.Empty:
                break

        for relative in manifest.checksums:
            outcome = outcomes.get(relative)
            if outcome is None:
                logger.warning("Timed out hashing %s; counting as missing", relative)
                report.missing.append(relative)
            elif outcome == _VERIFIED:
                report.verified.append(relative)
            elif outcome == _MODIFIED:
                logger.info("Modified: %s", relative)
                report.modified.append(relative)
            else:
                logger.info("Missing: %s", relative)
                report.missing.append(relative)


def verify_package(
    root_hint: Path | None = None, secret: str | None = None
) -> bool:
    """Convenience wrapper: verify the package under *root_hint*."""
    return PackageVerifier(root_hint, secret=secret).verify_package()

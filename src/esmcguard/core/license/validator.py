"""License validation — the fast-path tier check.

``LicenseValidator.validate_license()`` reads the local license record,
cross-checks the optional guardian blessing, applies the expiry policy,
and returns an ``EvaluatedLicense``. Every expected failure (missing file,
bad JSON, tampering) is reported in the result rather than raised.

Blessing checks are asymmetric:

- A blessing file whose token disagrees with the license is tampering and
  always invalidates the license.
- A blessing file that is missing or unreadable only degrades the result
  to "unverified" and is logged when verbose.

Check order: required fields, then tamper checks, then expiry. A tampered
license is therefore invalid whether or not it has expired.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from esmcguard.config import blessing_path, license_path
from esmcguard.core.discovery import resolve_root
from esmcguard.core.license.models import (
    BLESSING_TAMPERED,
    CHECKSUM_MISMATCH,
    EXPIRED_TIER,
    INVALID_FORMAT,
    NOT_CONFIGURED,
    BlessingRecord,
    EvaluatedLicense,
    LicenseRecord,
)
from esmcguard.exceptions import LicenseError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso_datetime(value: str) -> datetime | None:
    """Parse an ISO-8601 date or timestamp into an aware UTC datetime.

    Accepts the forms JavaScript's ``Date.toISOString()`` emits (trailing
    ``Z``, millisecond fractions) as well as bare dates. Naive values are
    taken as UTC.

    Returns:
        The parsed datetime, or None if *value* is not ISO-8601.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class LicenseValidator:
    """Validate the license record under a project root.

    Example::

        validator = LicenseValidator(Path("/work/project"))
        result = validator.validate_license()
        if result.valid:
            print(result.tier)

    Args:
        root_hint: Project root holding the ``.claude`` directory. When
            None, the root is discovered from the current directory.
        verbose: Log degraded-blessing and bad-date warnings.
        clock: Returns "now" as an aware datetime; injectable for tests.
    """

    def __init__(
        self,
        root_hint: Path | None = None,
        verbose: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.root = resolve_root(root_hint)
        self.verbose = verbose
        self._clock = clock

    @property
    def license_path(self) -> Path:
        return license_path(self.root)

    @property
    def blessing_path(self) -> Path:
        return blessing_path(self.root)

    def validate_license(self) -> EvaluatedLicense:
        """Evaluate the license record.

        Returns:
            An ``EvaluatedLicense``. ``valid`` is False with an ``error``
            for a missing, unparseable, incomplete, or tampered record.
            Expired records are valid with tier "FREE".

        Raises:
            LicenseError: If the license file exists but cannot be read.
        """
        path = self.license_path
        if not path.exists():
            return EvaluatedLicense.failure(NOT_CONFIGURED)

        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            return EvaluatedLicense.failure(f"Parse error: {exc}")
        except OSError as exc:
            raise LicenseError(f"Cannot read license file {path}: {exc}") from exc

        try:
            data = json.loads(text)
        except (json.JSONDecodeError, RecursionError) as exc:
            return EvaluatedLicense.failure(f"Parse error: {exc}")
        if not isinstance(data, dict):
            return EvaluatedLicense.failure(
                "Parse error: license must be a JSON object"
            )

        if not LicenseRecord.has_required_fields(data):
            return EvaluatedLicense.failure(INVALID_FORMAT)
        record = LicenseRecord.from_dict(data)

        blessing_verified = False
        if record.blessing is not None:
            blessing = self._load_blessing()
            if blessing is not None:
                error = self._check_blessing(record, blessing)
                if error is not None:
                    return EvaluatedLicense.failure(error, record=record)
                blessing_verified = True

        expires_at = self._expiry_of(record)
        if expires_at is not None and expires_at < self._clock():
            return EvaluatedLicense(
                valid=True,
                tier=EXPIRED_TIER,
                expired=True,
                record=record,
                blessing_verified=blessing_verified,
                expires_at=expires_at,
            )

        return EvaluatedLicense(
            valid=True,
            tier=record.tier,
            expired=False,
            record=record,
            blessing_verified=blessing_verified,
            expires_at=expires_at,
        )

    # -- Blessing -----------------------------------------------------------

    def _load_blessing(self) -> BlessingRecord | None:
        """Read the blessing file, or None when it is absent or unusable."""
        path = self.blessing_path
        if not path.exists():
            self._warn("Guardian blessing not found at %s; license unverified", path)
            return None
        try:
            data: Any = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, RecursionError) as exc:
            self._warn("Guardian blessing unreadable (%s); license unverified", exc)
            return None
        if not isinstance(data, dict):
            self._warn("Guardian blessing is not a JSON object; license unverified")
            return None
        return BlessingRecord.from_dict(data)

    @staticmethod
    def _check_blessing(
        record: LicenseRecord, blessing: BlessingRecord
    ) -> str | None:
        """Return a tamper error message, or None if the blessing agrees."""
        if blessing.token != record.blessing:
            return BLESSING_TAMPERED
        if (
            blessing.vercel_checksum is not None
            and record.vercel_checksum is not None
            and blessing.vercel_checksum != record.vercel_checksum
        ):
            return CHECKSUM_MISMATCH
        return None

    # -- Expiry -------------------------------------------------------------

    def _expiry_of(self, record: LicenseRecord) -> datetime | None:
        if record.subscription_end_date is None:
            return None
        expires_at = parse_iso_datetime(record.subscription_end_date)
        if expires_at is None:
            self._warn(
                "Ignoring unparseable subscriptionEndDate %r",
                record.subscription_end_date,
            )
        return expires_at

    def _warn(self, msg: str, *args: Any) -> None:
        if self.verbose:
            logger.warning(msg, *args)


def validate_license(
    root_hint: Path | None = None, verbose: bool = False
) -> EvaluatedLicense:
    """Convenience wrapper: validate the license under *root_hint*."""
    return LicenseValidator(root_hint, verbose=verbose).validate_license()

"""License data models — LicenseRecord, BlessingRecord, EvaluatedLicense.

These are pure data holders mirroring the JSON documents on disk. On-disk
field names are camelCase; ``from_dict`` maps them onto snake_case
attributes and ``to_dict`` maps them back, omitting absent values.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

# ---------------------------------------------------------------------------
# Result messages
# ---------------------------------------------------------------------------

NOT_CONFIGURED = "Not configured"
INVALID_FORMAT = "Invalid license format (missing email or tier)"
BLESSING_TAMPERED = "Blessing validation failed (tampered license detected)"
CHECKSUM_MISMATCH = (
    "Checksum validation failed (license authenticity check failed)"
)

EXPIRED_TIER = "FREE"


def _opt_str(data: dict[str, Any], key: str) -> str | None:
    """Return ``data[key]`` as a string, or None when absent/null/empty."""
    value = data.get(key)
    if value is None or value == "":
        return None
    return str(value)


def _opt_value(data: dict[str, Any], key: str) -> Any:
    """Return ``data[key]`` as decoded, or None when absent/null/empty."""
    value = data.get(key)
    if value is None or value == "":
        return None
    return value


# ---------------------------------------------------------------------------
# LicenseRecord
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LicenseRecord:
    """The local license file, ``<root>/.claude/.esmc-license.json``.

    Attributes:
        email: Licensee email. Required.
        tier: Entitlement level (FREE/PRO/MAX/VIP). Required, opaque.
        blessing: Guardian blessing token; present only for endorsed
            licenses.
        vercel_checksum: Server checksum bound to the license, kept as
            decoded: a string or a ``{value, rotation}`` object. Compared
            by value, so object key order does not matter.
        subscription_end_date: ISO-8601 expiry; None means no expiry.
        issued_at: ISO-8601 issuance timestamp.
        display_name: Human-readable name for status output.
        user_id: Account identifier.
        subscription_status: "active", "expired", or "cancelled".
        version: License file format version.
        mode: Storage mode ("plaintext").
        last_validated: ISO-8601 timestamp of the last server refresh.
    """

    email: str
    tier: str
    blessing: str | None = None
    vercel_checksum: Any = None
    subscription_end_date: str | None = None
    issued_at: str | None = None
    display_name: str | None = None
    user_id: str | None = None
    subscription_status: str | None = None
    version: str | None = None
    mode: str | None = None
    last_validated: str | None = None

    @staticmethod
    def has_required_fields(data: dict[str, Any]) -> bool:
        """Return True if *data* carries a non-empty email and tier."""
        return bool(data.get("email")) and bool(data.get("tier"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LicenseRecord:
        """Build a record from decoded JSON.

        Raises:
            KeyError: If ``email`` or ``tier`` is missing.
        """
        if not cls.has_required_fields(data):
            raise KeyError("email/tier")
        return cls(
            email=str(data["email"]),
            tier=str(data["tier"]),
            blessing=_opt_str(data, "blessing"),
            vercel_checksum=_opt_value(data, "vercelChecksum"),
            subscription_end_date=_opt_str(data, "subscriptionEndDate"),
            issued_at=_opt_str(data, "issuedAt"),
            display_name=_opt_str(data, "displayName"),
            user_id=_opt_str(data, "userId"),
            subscription_status=_opt_str(data, "subscriptionStatus"),
            version=_opt_str(data, "version"),
            mode=_opt_str(data, "mode"),
            last_validated=_opt_str(data, "lastValidated"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the on-disk camelCase layout."""
        pairs = [
            ("version", self.version),
            ("mode", self.mode),
            ("email", self.email),
            ("userId", self.user_id),
            ("displayName", self.display_name),
            ("tier", self.tier),
            ("subscriptionStatus", self.subscription_status),
            ("subscriptionEndDate", self.subscription_end_date),
            ("blessing", self.blessing),
            ("vercelChecksum", self.vercel_checksum),
            ("issuedAt", self.issued_at),
            ("lastValidated", self.last_validated),
        ]
        return {key: value for key, value in pairs if value is not None}


# ---------------------------------------------------------------------------
# BlessingRecord
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BlessingRecord:
    """The guardian blessing file, ``<root>/.claude/.esmc-guardian-blessing.json``."""

    token: str | None
    vercel_checksum: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlessingRecord:
        return cls(
            token=_opt_str(data, "token"),
            vercel_checksum=_opt_value(data, "vercelChecksum"),
        )


# ---------------------------------------------------------------------------
# EvaluatedLicense
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EvaluatedLicense:
    """Outcome of a single ``validate_license()`` call. Never persisted.

    Attributes:
        valid: True when the record parsed and passed tamper checks.
            Expired records are still valid (but downgraded).
        tier: Effective tier: the stored tier, "FREE" when expired, or
            None when invalid.
        expired: True when ``subscriptionEndDate`` lies in the past.
        error: Failure message when ``valid`` is False, else None.
        record: The parsed license record, when one was read.
        blessing_verified: True when a blessing file was found and its
            token matched the license.
        expires_at: Parsed expiry instant, if the record has one.
    """

    valid: bool
    tier: str | None = None
    expired: bool = False
    error: str | None = None
    record: LicenseRecord | None = None
    blessing_verified: bool = False
    expires_at: datetime | None = None

    @classmethod
    def failure(
        cls, error: str, record: LicenseRecord | None = None
    ) -> EvaluatedLicense:
        """Build an invalid result carrying *error*."""
        return cls(valid=False, error=error, record=record)

    @property
    def exit_code(self) -> int:
        """Process exit code for CLI reflexes: 0 when valid, 1 otherwise."""
        return 0 if self.valid else 1

    def as_dict(self) -> dict[str, Any]:
        """Return the four-field result shape used for JSON output."""
        return {
            "valid": self.valid,
            "tier": self.tier,
            "expired": self.expired,
            "error": self.error,
        }

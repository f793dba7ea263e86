"""License file persistence — creating, writing, and deleting license records.

The validator only reads. Writing happens after a successful login (the
``activate`` command) and deletion on logout. Records are stored as
indented plaintext JSON at the fixed license path so the fast-path check
can find them without any lookup.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from esmcguard.config import license_path
from esmcguard.core.discovery import resolve_root
from esmcguard.exceptions import LicenseError

logger = logging.getLogger(__name__)

LICENSE_FORMAT_VERSION = "3.65.0"
LICENSE_MODE = "plaintext"


def create_license_data(
    email: str,
    tier: str | None = None,
    *,
    user_id: str | None = None,
    display_name: str | None = None,
    subscription_status: str | None = None,
    subscription_end_date: str | None = None,
    blessing: str | None = None,
    vercel_checksum: str | dict[str, Any] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build a license document in the on-disk layout.

    Args:
        email: Licensee email (required).
        tier: Entitlement tier; defaults to "FREE".
        user_id: Account identifier; defaults to ``MCP_<local-part>``.
        display_name: Defaults to the email local part.
        subscription_status: Defaults to "active".
        subscription_end_date: ISO-8601 expiry, or None for no expiry.
        blessing: Guardian blessing token, if endorsed.
        vercel_checksum: Server checksum, if issued.
        now: Timestamp for ``issuedAt``/``lastValidated`` (tests).

    Returns:
        A JSON-serializable dict with camelCase keys.

    Raises:
        ValueError: If *email* is empty.
    """
    if not email:
        raise ValueError("email is required")
    local_part = email.split("@")[0]
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return {
        "version": LICENSE_FORMAT_VERSION,
        "mode": LICENSE_MODE,
        "email": email,
        "userId": user_id or f"MCP_{local_part}",
        "displayName": display_name or local_part,
        "tier": tier or "FREE",
        "subscriptionStatus": subscription_status or "active",
        "subscriptionEndDate": subscription_end_date,
        "blessing": blessing,
        "vercelChecksum": vercel_checksum,
        "issuedAt": stamp,
        "lastValidated": stamp,
    }


class LicenseStore:
    """Read-write access to the license file under a project root."""

    def __init__(self, root_hint: Path | None = None) -> None:
        self.root = resolve_root(root_hint)

    @property
    def path(self) -> Path:
        return license_path(self.root)

    def write(self, data: dict[str, Any]) -> Path:
        """Write *data* as the license record, replacing any existing one.

        Creates the marker directory if it does not exist.

        Returns:
            The path written.

        Raises:
            LicenseError: If the file cannot be written.
        """
        path = self.path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            raise LicenseError(f"Cannot write license file {path}: {exc}") from exc
        logger.info("License written to %s", path)
        return path

    def delete(self) -> bool:
        """Remove the license record.

        Returns:
            True if a file was removed, False if there was none.

        Raises:
            LicenseError: If the file exists but cannot be removed.
        """
        path = self.path
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise LicenseError(f"Cannot delete license file {path}: {exc}") from exc
        logger.info("License deleted: %s", path)
        return True

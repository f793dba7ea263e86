"""License validation for ESMC installations.

The package is split into focused submodules:

- ``models``: ``LicenseRecord``, ``BlessingRecord``, ``EvaluatedLicense``
  and the result message constants.
- ``validator``: ``LicenseValidator`` with blessing and expiry checks.
- ``store``: writing and deleting license records.
- ``tiers``: tier ordering and access checks.

All public names are re-exported here.
"""

from esmcguard.core.license.models import (
    BLESSING_TAMPERED,
    CHECKSUM_MISMATCH,
    INVALID_FORMAT,
    NOT_CONFIGURED,
    BlessingRecord,
    EvaluatedLicense,
    LicenseRecord,
)
from esmcguard.core.license.store import LicenseStore, create_license_data
from esmcguard.core.license.tiers import TIER_HIERARCHY, meets_tier, tier_rank
from esmcguard.core.license.validator import (
    LicenseValidator,
    parse_iso_datetime,
    validate_license,
)

__all__ = [
    "BLESSING_TAMPERED",
    "CHECKSUM_MISMATCH",
    "INVALID_FORMAT",
    "NOT_CONFIGURED",
    "TIER_HIERARCHY",
    "BlessingRecord",
    "EvaluatedLicense",
    "LicenseRecord",
    "LicenseStore",
    "LicenseValidator",
    "create_license_data",
    "meets_tier",
    "parse_iso_datetime",
    "tier_rank",
    "validate_license",
]

"""Tests for LicenseValidator.validate_license().

Covers the not-configured fast path, parse and format errors, blessing
tamper detection and graceful degradation, checksum cross-checks, the
expiry downgrade, and idempotence.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from esmcguard.core.license import (
    BLESSING_TAMPERED,
    CHECKSUM_MISMATCH,
    INVALID_FORMAT,
    NOT_CONFIGURED,
    LicenseValidator,
    parse_iso_datetime,
    validate_license,
)
from esmcguard.exceptions import LicenseError

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def _validator(root: Path, verbose: bool = False) -> LicenseValidator:
    return LicenseValidator(root, verbose=verbose, clock=lambda: NOW)


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*")) if p.is_file()
    }


class TestNotConfigured:
    """No license file on disk."""

    def test_missing_license_is_not_configured(self, project_root: Path) -> None:
        result = _validator(project_root).validate_license()
        assert result.valid is False
        assert result.error == NOT_CONFIGURED
        assert result.tier is None

    def test_missing_marker_directory(self, tmp_path: Path) -> None:
        """A root without .claude/ is simply not configured."""
        result = _validator(tmp_path).validate_license()
        assert result.error == NOT_CONFIGURED

    def test_no_files_written(self, project_root: Path) -> None:
        """The fast path never creates files or directories."""
        before = sorted(project_root.rglob("*"))
        _validator(project_root).validate_license()
        assert sorted(project_root.rglob("*")) == before

    def test_exit_code_is_one(self, project_root: Path) -> None:
        assert _validator(project_root).validate_license().exit_code == 1


class TestMalformed:
    """License files that fail parsing or the required-field check."""

    def test_invalid_json(self, write_license) -> None:
        path = write_license("{not json")
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is False
        assert result.error.startswith("Parse error: ")

    def test_non_object_json(self, write_license) -> None:
        path = write_license("[1, 2, 3]")
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is False
        assert result.error.startswith("Parse error: ")

    def test_deeply_nested_json(self, write_license) -> None:
        path = write_license("[" * 200000)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is False
        assert result.error.startswith("Parse error: ")

    @pytest.mark.parametrize("missing", ["email", "tier"])
    def test_missing_required_field(
        self, write_license, license_data, missing: str
    ) -> None:
        del license_data[missing]
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is False
        assert result.error == INVALID_FORMAT

    def test_empty_email_is_missing(self, write_license, license_data) -> None:
        license_data["email"] = ""
        path = write_license(license_data)
        assert _validator(path.parent.parent).validate_license().error == INVALID_FORMAT

    def test_required_fields_checked_before_blessing(
        self, write_license, write_blessing, license_data
    ) -> None:
        """A record without tier is rejected even if its blessing mismatches."""
        del license_data["tier"]
        license_data["blessing"] = "token-a"
        write_blessing({"token": "token-b"})
        path = write_license(license_data)
        assert _validator(path.parent.parent).validate_license().error == INVALID_FORMAT


class TestValidLicense:
    """Well-formed licenses without tampering."""

    def test_valid_without_blessing(self, write_license, license_data) -> None:
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is True
        assert result.tier == "PRO"
        assert result.expired is False
        assert result.error is None
        assert result.exit_code == 0

    def test_record_is_attached(self, write_license, license_data) -> None:
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.record is not None
        assert result.record.email == "dev@example.com"
        assert result.record.display_name == "Dev"

    def test_future_expiry_keeps_tier(self, write_license, license_data) -> None:
        license_data["subscriptionEndDate"] = "2027-01-01T00:00:00.000Z"
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is True
        assert result.tier == "PRO"
        assert result.expired is False
        assert result.expires_at == datetime(2027, 1, 1, tzinfo=timezone.utc)

    def test_null_expiry_means_no_expiration(
        self, write_license, license_data
    ) -> None:
        license_data["subscriptionEndDate"] = None
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.tier == "PRO"
        assert result.expires_at is None


class TestExpiry:
    """Past subscription end dates downgrade to FREE."""

    def test_expired_max_downgrades_to_free(
        self, write_license, license_data
    ) -> None:
        license_data["tier"] = "MAX"
        license_data["subscriptionEndDate"] = "2026-01-31"
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is True
        assert result.tier == "FREE"
        assert result.expired is True
        assert result.error is None

    def test_unparseable_date_is_ignored(
        self, write_license, license_data
    ) -> None:
        license_data["subscriptionEndDate"] = "sometime next year"
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is True
        assert result.tier == "PRO"
        assert result.expired is False


class TestBlessing:
    """Guardian blessing cross-checks."""

    def test_matching_blessing_is_verified(
        self, write_license, write_blessing, license_data
    ) -> None:
        license_data["blessing"] = "bless-123"
        write_blessing({"token": "bless-123"})
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is True
        assert result.blessing_verified is True

    def test_mismatched_token_is_tampered(
        self, write_license, write_blessing, license_data
    ) -> None:
        license_data["blessing"] = "bless-123"
        write_blessing({"token": "forged"})
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is False
        assert result.error == BLESSING_TAMPERED

    def test_tamper_beats_expiry(
        self, write_license, write_blessing, license_data
    ) -> None:
        """Tampering is reported even when the license has also expired."""
        license_data["blessing"] = "bless-123"
        license_data["subscriptionEndDate"] = "2020-01-01"
        write_blessing({"token": "forged"})
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is False
        assert result.error == BLESSING_TAMPERED

    def test_blessing_without_token_is_tampered(
        self, write_license, write_blessing, license_data
    ) -> None:
        license_data["blessing"] = "bless-123"
        write_blessing({"vercelChecksum": "abc"})
        path = write_license(license_data)
        assert _validator(path.parent.parent).validate_license().error == BLESSING_TAMPERED

    def test_missing_blessing_file_degrades(
        self, write_license, license_data
    ) -> None:
        """Same result as an unblessed license, minus verification."""
        license_data["blessing"] = "bless-123"
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is True
        assert result.tier == "PRO"
        assert result.expired is False
        assert result.error is None
        assert result.blessing_verified is False

    def test_corrupt_blessing_file_degrades(
        self, write_license, write_blessing, license_data
    ) -> None:
        license_data["blessing"] = "bless-123"
        write_blessing("{{{")
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is True
        assert result.blessing_verified is False

    def test_deeply_nested_blessing_degrades(
        self, write_license, write_blessing, license_data
    ) -> None:
        license_data["blessing"] = "bless-123"
        write_blessing("{\"token\": " + "[" * 200000)
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is True
        assert result.tier == "PRO"
        assert result.blessing_verified is False

    def test_blessing_file_ignored_without_license_blessing(
        self, write_license, write_blessing, license_data
    ) -> None:
        """A stray blessing file is not consulted for unblessed licenses."""
        write_blessing({"token": "whatever"})
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is True
        assert result.blessing_verified is False


class TestVercelChecksum:
    """Checksum cross-check between license and blessing."""

    def test_differing_checksums_fail(
        self, write_license, write_blessing, license_data
    ) -> None:
        license_data.update(blessing="b", vercelChecksum="aaa")
        write_blessing({"token": "b", "vercelChecksum": "bbb"})
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is False
        assert result.error == CHECKSUM_MISMATCH

    def test_equal_checksums_pass(
        self, write_license, write_blessing, license_data
    ) -> None:
        license_data.update(blessing="b", vercelChecksum="aaa")
        write_blessing({"token": "b", "vercelChecksum": "aaa"})
        path = write_license(license_data)
        assert _validator(path.parent.parent).validate_license().valid is True

    @pytest.mark.parametrize("side", ["license", "blessing"])
    def test_one_sided_checksum_is_skipped(
        self, write_license, write_blessing, license_data, side: str
    ) -> None:
        license_data["blessing"] = "b"
        blessing = {"token": "b"}
        if side == "license":
            license_data["vercelChecksum"] = "aaa"
        else:
            blessing["vercelChecksum"] = "bbb"
        write_blessing(blessing)
        path = write_license(license_data)
        assert _validator(path.parent.parent).validate_license().valid is True

    def test_object_checksums_compare_by_value(
        self, write_license, write_blessing, license_data
    ) -> None:
        """Checksum objects match regardless of key order."""
        license_data.update(
            blessing="b", vercelChecksum={"value": "v1", "rotation": "r1"}
        )
        write_blessing(
            {"token": "b", "vercelChecksum": {"rotation": "r1", "value": "v1"}}
        )
        path = write_license(license_data)
        result = _validator(path.parent.parent).validate_license()
        assert result.valid is True
        assert result.blessing_verified is True

    def test_object_checksums_differing_value_fail(
        self, write_license, write_blessing, license_data
    ) -> None:
        license_data.update(
            blessing="b", vercelChecksum={"value": "v1", "rotation": "r1"}
        )
        write_blessing(
            {"token": "b", "vercelChecksum": {"value": "v2", "rotation": "r1"}}
        )
        path = write_license(license_data)
        assert _validator(path.parent.parent).validate_license().error == CHECKSUM_MISMATCH


class TestVerboseWarnings:
    """Degraded-blessing warnings are gated by the verbose flag."""

    def test_quiet_by_default(
        self, write_license, license_data, caplog: pytest.LogCaptureFixture
    ) -> None:
        license_data["blessing"] = "b"
        path = write_license(license_data)
        with caplog.at_level(logging.WARNING, logger="esmcguard"):
            _validator(path.parent.parent).validate_license()
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def test_verbose_warns_on_missing_blessing(
        self, write_license, license_data, caplog: pytest.LogCaptureFixture
    ) -> None:
        license_data["blessing"] = "b"
        path = write_license(license_data)
        with caplog.at_level(logging.WARNING, logger="esmcguard"):
            _validator(path.parent.parent, verbose=True).validate_license()
        assert any("blessing" in r.getMessage().lower() for r in caplog.records)

    def test_verbose_warns_on_corrupt_blessing(
        self, write_license, write_blessing, license_data,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        license_data["blessing"] = "b"
        write_blessing("not json")
        path = write_license(license_data)
        with caplog.at_level(logging.WARNING, logger="esmcguard"):
            result = _validator(path.parent.parent, verbose=True).validate_license()
        assert result.valid is True
        assert any("unreadable" in r.getMessage() for r in caplog.records)


class TestIdempotence:
    """Repeated validation yields identical results and leaves files alone."""

    def test_twice_same_result(
        self, project_root: Path, write_license, write_blessing, license_data
    ) -> None:
        license_data.update(blessing="b", subscriptionEndDate="2026-02-01")
        write_blessing({"token": "b"})
        write_license(license_data)
        before = _snapshot(project_root)
        first = _validator(project_root).validate_license()
        second = _validator(project_root).validate_license()
        assert first == second
        assert _snapshot(project_root) == before


class TestRootDiscovery:
    """Validator without an explicit root discovers one from the cwd."""

    def test_discovers_from_nested_cwd(
        self, project_root: Path, write_license, license_data,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        write_license(license_data)
        nested = project_root / "src" / "deep"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        result = validate_license()
        assert result.valid is True
        assert result.tier == "PRO"


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="permission bits are not enforced for root",
)
class TestUnreadable:
    """Unexpected I/O errors propagate as LicenseError."""

    def test_unreadable_license_raises(self, write_license, license_data) -> None:
        path = write_license(license_data)
        path.chmod(0)
        try:
            with pytest.raises(LicenseError):
                _validator(path.parent.parent).validate_license()
        finally:
            path.chmod(0o644)


class TestParseIsoDatetime:
    """ISO-8601 parsing for expiry dates."""

    def test_zulu_with_millis(self) -> None:
        assert parse_iso_datetime("2026-03-04T05:06:07.000Z") == datetime(
            2026, 3, 4, 5, 6, 7, tzinfo=timezone.utc
        )

    def test_bare_date_is_utc_midnight(self) -> None:
        assert parse_iso_datetime("2026-03-04") == datetime(
            2026, 3, 4, tzinfo=timezone.utc
        )

    def test_offset_preserved(self) -> None:
        parsed = parse_iso_datetime("2026-03-04T00:00:00+02:00")
        assert parsed == datetime(2026, 3, 3, 22, tzinfo=timezone.utc)

    def test_garbage_is_none(self) -> None:
        assert parse_iso_datetime("not a date") is None

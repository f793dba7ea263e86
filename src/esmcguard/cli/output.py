"""Rich output formatting helpers for the esmc-guard CLI.

Provides the human-readable renderings of license status and package
integrity reports. Every command also signals pass/fail through its exit
code, so nothing here is needed for scripting.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from esmcguard.core.integrity import IntegrityReport
from esmcguard.core.license import EvaluatedLicense

console = Console()

_SECONDS_PER_DAY = 86400


def days_left(expires_at: datetime, now: datetime | None = None) -> int:
    """Whole days remaining until *expires_at*, rounded up."""
    now = now or datetime.now(timezone.utc)
    return max(0, math.ceil((expires_at - now).total_seconds() / _SECONDS_PER_DAY))


def license_status_text(
    result: EvaluatedLicense, now: datetime | None = None
) -> str:
    """Return the one-line human status for an evaluated license."""
    if not result.valid:
        return f"Invalid ({result.error})"
    if result.expired:
        return "Expired (downgraded to FREE)"
    if result.expires_at is not None:
        return f"Active ({days_left(result.expires_at, now)} days left)"
    return "Active"


def _format_date(value: datetime | str | None) -> str:
    if value is None:
        return "-"
    if isinstance(value, datetime):
        return value.date().isoformat()
    return value


def print_license_status(
    result: EvaluatedLicense, now: datetime | None = None
) -> None:
    """Print the multi-line license status report.

    Args:
        result: The evaluated license.
        now: Reference time for the days-left computation (tests).
    """
    record = result.record
    if record is None:
        console.print(
            Panel(Text(result.error or "Not configured", style="bold red"),
                  title="ESMC License")
        )
        return

    if result.expired:
        style = "yellow"
    elif result.valid:
        style = "bold green"
    else:
        style = "bold red"

    if record.blessing is None:
        blessing = "No"
    elif result.blessing_verified:
        blessing = "Yes (verified)"
    else:
        blessing = "Yes (unverified)"

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("User", Text(record.display_name or record.email))
    table.add_row("Email", Text(record.email))
    table.add_row("Tier", Text(result.tier or record.tier))
    table.add_row("Status", Text(license_status_text(result, now), style=style))
    if record.subscription_end_date is None:
        expires = "Never"
    else:
        expires = _format_date(result.expires_at or record.subscription_end_date)
    table.add_row("Expires", expires)
    table.add_row("Blessing", blessing)
    table.add_row("Issued", _format_date(record.issued_at))
    console.print(Panel(table, title="ESMC License"))


def print_integrity_report(report: IntegrityReport) -> None:
    """Print the package verification report.

    Args:
        report: Result of ``PackageVerifier.verify()``.
    """
    manifest = report.manifest
    if manifest is not None:
        console.print(f"  Build Version:  [bold]{escape(manifest.build_version)}[/bold]")
        console.print(f"  Build Date:     {escape(manifest.build_date)}")
        console.print(f"  Architecture:   {escape(manifest.architecture)}")
        console.print(f"  Expected Files: {manifest.total_files}")

    if report.error is not None:
        console.print(f"[bold red]{escape(report.error)}[/bold red]")
    else:
        console.print("[green]Signature valid[/green]")
        console.print(f"  Verified: [green]{len(report.verified)}[/green] files")
        if report.modified or report.missing:
            table = Table(title="Integrity Findings", show_header=True)
            table.add_column("Status", justify="center")
            table.add_column("File")
            for path in report.modified:
                table.add_row(Text("MODIFIED", style="bold red"), Text(path))
            for path in report.missing:
                table.add_row(Text("MISSING", style="yellow"), Text(path))
            console.print(table)
            console.print(f"  Modified: [red]{len(report.modified)}[/red] files")
            console.print(f"  Missing:  [red]{len(report.missing)}[/red] files")

    if report.is_valid:
        console.print(
            Panel("[bold green]PACKAGE INTEGRITY VERIFIED[/bold green]\nSafe to deploy",
                  title="Verdict")
        )
    else:
        console.print(
            Panel("[bold red]PACKAGE INTEGRITY COMPROMISED[/bold red]\nDO NOT deploy this package",
                  title="Verdict")
        )


"""``esmc-license`` — Fast-path license checks and license management.

Commands:
    tier      — Print the effective tier, or "Not configured".
    status    — Print a license status report.
    access    — Check that the license grants at least a given tier.
    activate  — Write a license record (after login).
    logout    — Delete the license record.
    help      — Print usage.

Exit Codes:
    0 — License valid (or management command succeeded).
    1 — License missing, invalid, or tampered; usage errors; I/O errors.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from esmcguard.cli.common import (
    configure_logging,
    fail,
    format_option,
    load_settings,
    root_option,
    verbose_option,
)
from esmcguard.config import Settings
from esmcguard.core.license import (
    NOT_CONFIGURED,
    TIER_HIERARCHY,
    EvaluatedLicense,
    LicenseStore,
    LicenseValidator,
    create_license_data,
    meets_tier,
    parse_iso_datetime,
)
from esmcguard.exceptions import EsmcGuardError


class UnknownCommandError(click.UsageError):
    """Usage error for unrecognized subcommands; exits 1 instead of 2."""

    exit_code = 1


class LicenseGroup(click.Group):
    """Click group that reports unknown commands with exit code 1."""

    def resolve_command(self, ctx, args):
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError as exc:
            raise UnknownCommandError(exc.message, ctx) from exc


def _evaluate(settings: Settings) -> EvaluatedLicense:
    """Validate the license, turning unexpected errors into an exit."""
    try:
        validator = LicenseValidator(settings.project_root, verbose=settings.verbose)
        return validator.validate_license()
    except (EsmcGuardError, OSError) as exc:
        fail(str(exc))


@click.group("license", cls=LicenseGroup, invoke_without_command=True)
@root_option
@verbose_option
@click.pass_context
def license_cli(ctx: click.Context, root: Path | None, verbose: bool) -> None:
    """ESMC license checks: tier, status, access, activate, logout.

    Exit code 0 when the license is valid, 1 otherwise.
    """
    settings = load_settings(root=root, verbose=verbose)
    configure_logging(settings.verbose)
    ctx.obj = settings
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        sys.exit(1)


@license_cli.command("tier")
@format_option
@click.pass_obj
def tier_command(settings: Settings, output_format: str) -> None:
    """Print the effective license tier."""
    result = _evaluate(settings)
    if output_format == "json":
        click.echo(json.dumps(result.as_dict(), indent=2))
    elif result.valid:
        click.echo(result.tier)
    else:
        click.echo(NOT_CONFIGURED)
        if result.error != NOT_CONFIGURED:
            click.echo(f"Error: {result.error}", err=True)
    sys.exit(result.exit_code)


@license_cli.command("status")
@format_option
@click.pass_obj
def status_command(settings: Settings, output_format: str) -> None:
    """Print a license status report."""
    result = _evaluate(settings)
    if output_format == "json":
        from esmcguard.cli.output import license_status_text
        record = result.record
        data = result.as_dict()
        data.update({
            "status": license_status_text(result),
            "email": record.email if record else None,
            "display_name": record.display_name if record else None,
            "expires": record.subscription_end_date if record else None,
            "blessing_present": bool(record and record.blessing),
            "blessing_verified": result.blessing_verified,
            "issued_at": record.issued_at if record else None,
        })
        click.echo(json.dumps(data, indent=2))
    else:
        from esmcguard.cli.output import print_license_status
        print_license_status(result)
    sys.exit(result.exit_code)


@license_cli.command("access")
@click.argument("required_tier", type=click.Choice(TIER_HIERARCHY, case_sensitive=False))
@click.pass_obj
def access_command(settings: Settings, required_tier: str) -> None:
    """Exit 0 if the license grants at least REQUIRED_TIER."""
    result = _evaluate(settings)
    current = result.tier if result.valid else None
    if meets_tier(current, required_tier):
        click.echo(f"Access granted: {current} >= {required_tier.upper()}")
        sys.exit(0)
    click.echo(f"Access denied: {current or NOT_CONFIGURED} < {required_tier.upper()}")
    sys.exit(1)


@license_cli.command("activate")
@click.option("--email", required=True, help="Licensee email.")
@click.option("--tier", default="FREE", show_default=True, help="Entitlement tier.")
@click.option("--expires", default=None, help="ISO-8601 subscription end date.")
@click.option("--display-name", default=None, help="Name shown in status.")
@click.option("--user-id", default=None, help="Account identifier.")
@click.option("--blessing", default=None, help="Guardian blessing token.")
@click.option("--vercel-checksum", default=None, help="Server-issued checksum.")
@click.pass_obj
def activate_command(
    settings: Settings,
    email: str,
    tier: str,
    expires: str | None,
    display_name: str | None,
    user_id: str | None,
    blessing: str | None,
    vercel_checksum: str | None,
) -> None:
    """Write a license record for EMAIL."""
    if expires is not None and parse_iso_datetime(expires) is None:
        raise click.BadParameter(
            f"not an ISO-8601 date: {expires!r}", param_hint="--expires"
        )
    data = create_license_data(
        email,
        tier.upper(),
        user_id=user_id,
        display_name=display_name,
        subscription_end_date=expires,
        blessing=blessing,
        vercel_checksum=vercel_checksum,
    )
    try:
        path = LicenseStore(settings.project_root).write(data)
    except EsmcGuardError as exc:
        fail(str(exc))
    click.echo(f"License written to: {path}")
    click.echo(f"User: {email}  Tier: {data['tier']}")


@license_cli.command("logout")
@click.pass_obj
def logout_command(settings: Settings) -> None:
    """Delete the license record."""
    try:
        removed = LicenseStore(settings.project_root).delete()
    except EsmcGuardError as exc:
        fail(str(exc))
    click.echo("License deleted." if removed else "No license file found.")


@license_cli.command("help")
@click.pass_context
def help_command(ctx: click.Context) -> None:
    """Show usage and exit 1."""
    click.echo(ctx.parent.get_help() if ctx.parent else ctx.get_help())
    sys.exit(1)

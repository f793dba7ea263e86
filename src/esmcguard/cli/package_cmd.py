"""``esmc-verify-package`` / ``esmc-sign-package`` — Package integrity commands.

``esmc-verify-package`` checks the manifest signature, then every listed
file's SHA-256 checksum, and reports modified and missing files.
``esmc-sign-package`` produces the manifest and signature that
verification consumes.

The HMAC passphrase override is read from ``ESMC_PACKAGE_SIGNATURE_KEY``
only, never from the command line.

Exit Codes:
    0 — Package verified (or signed).
    1 — Verification failed: missing/malformed manifest or signature,
        signature mismatch, modified or missing files; signing errors.
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
from esmcguard.config import DEFAULT_IO_TIMEOUT, DEFAULT_MAX_WORKERS
from esmcguard.core.integrity import PackageVerifier, collect_files, sign_package
from esmcguard.exceptions import EsmcGuardError


@click.command("verify-package")
@root_option
@format_option
@click.option(
    "--timeout",
    type=float,
    envvar="ESMC_IO_TIMEOUT",
    default=DEFAULT_IO_TIMEOUT,
    show_default=True,
    help="Deadline in seconds for hashing all listed files.",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_WORKERS,
    show_default=True,
    help="Number of files hashed in parallel.",
)
@verbose_option
def verify_package_command(
    root: Path | None,
    output_format: str,
    timeout: float,
    workers: int,
    verbose: bool,
) -> None:
    """Verify package integrity before deployment.

    Checks the HMAC signature of the integrity manifest, then the SHA-256
    checksum of every file it lists.

    Exit code 0 if the package is safe to deploy, 1 otherwise.
    """
    settings = load_settings(
        root=root, verbose=verbose, io_timeout=timeout, max_workers=workers
    )
    configure_logging(settings.verbose)

    try:
        verifier = PackageVerifier(
            settings.project_root,
            secret=settings.signature_secret,
            io_timeout=settings.io_timeout,
            max_workers=settings.max_workers,
        )
        report = verifier.verify()
    except (EsmcGuardError, OSError) as exc:
        fail(str(exc))

    if output_format == "json":
        click.echo(json.dumps(report.as_dict(), indent=2))
    else:
        from esmcguard.cli.output import print_integrity_report
        print_integrity_report(report)

    sys.exit(0 if report.is_valid else 1)


@click.command("sign-package")
@click.argument("patterns", nargs=-1, required=True)
@root_option
@click.option("--build-version", required=True, help="Build identifier.")
@click.option(
    "--architecture",
    default="universal",
    show_default=True,
    help="Architecture label recorded in the manifest.",
)
@click.option("--build-date", default=None, help="ISO-8601 build date (default: now).")
@verbose_option
def sign_package_command(
    patterns: tuple[str, ...],
    root: Path | None,
    build_version: str,
    architecture: str,
    build_date: str | None,
    verbose: bool,
) -> None:
    """Write a signed integrity manifest for files matching PATTERNS.

    PATTERNS are glob patterns relative to the package root
    (e.g. ``"**/*.js" package.json``).
    """
    settings = load_settings(root=root, verbose=verbose)
    configure_logging(settings.verbose)
    package_root = settings.project_root or Path.cwd()

    try:
        files = collect_files(package_root, list(patterns))
    except (EsmcGuardError, OSError) as exc:
        fail(str(exc))
    if not files:
        fail("No files matched the given patterns.")

    try:
        manifest, _ = sign_package(
            package_root,
            files,
            build_version=build_version,
            architecture=architecture,
            secret=settings.signature_secret,
            build_date=build_date,
        )
    except (EsmcGuardError, OSError) as exc:
        fail(str(exc))

    click.echo(
        f"Signed {manifest.total_files} files for build {manifest.build_version}."
    )

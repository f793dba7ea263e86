"""esmc-guard CLI — License and package integrity checks for ESMC.

Entry point for the ``esmc-guard`` command-line tool. Registers all
subcommands under a single Click group. The same commands are also
installed as standalone scripts (``esmc-license``,
``esmc-verify-package``, ``esmc-sign-package``).

Commands:
    license         — Fast-path license checks (tier, status, access, ...).
    verify-package  — Verify the package manifest signature and checksums.
    sign-package    — Produce a signed integrity manifest.

Usage::

    esmc-guard license tier
    esmc-guard license status
    esmc-guard verify-package --root ./dist
    esmc-guard sign-package "**/*.js" --root ./dist --build-version 3.13.0
"""

from __future__ import annotations

import click

from esmcguard import __version__
from esmcguard.cli.license_cmd import license_cli
from esmcguard.cli.package_cmd import sign_package_command, verify_package_command


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """esmc-guard: License validation and package integrity verification.

    Check the local ESMC license and its guardian blessing, and verify
    that a package matches its signed integrity manifest before deploying.
    """


# Register all subcommands
cli.add_command(license_cli)
cli.add_command(verify_package_command)
cli.add_command(sign_package_command)

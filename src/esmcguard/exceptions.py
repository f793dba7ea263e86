"""esmc-guard exception hierarchy.

All public exceptions inherit from EsmcGuardError, giving callers a single
base class to catch when they want to handle any esmc-guard failure without
swallowing unrelated errors.

Expected conditions (missing license, bad JSON, signature mismatch) are not
raised: the validator and verifier report them as tagged results. These
exceptions cover the unexpected cases the CLI must turn into exit codes.
"""


class EsmcGuardError(Exception):
    """Base exception for all esmc-guard errors."""


class LicenseError(EsmcGuardError):
    """Raised when a license or blessing file cannot be read or written.

    Covers permission errors and other OS failures on files that exist,
    as opposed to files that are simply absent.
    """


class ManifestError(EsmcGuardError):
    """Raised when an integrity manifest or package signature is unusable.

    Covers unreadable files, malformed JSON, and documents missing the
    ``checksums`` table or the ``signature`` field.
    """


class IntegrityError(EsmcGuardError):
    """Raised when a package cannot be signed.

    Covers files listed for signing that do not exist and failures
    writing the manifest or signature.
    """

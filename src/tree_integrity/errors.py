"""Exceptions raised by Tree Integrity."""


class IntegrityError(Exception):
    """Base exception for integrity errors."""

    code = "EINTEGRITY"

    def __init__(self, message: str):
        super().__init__(f"{self.code}: {message}")


class NotAFileError(IntegrityError):
    code = "ENOTFILE"


class NotADirError(IntegrityError):
    code = "ENOTDIR"


class ReservedNameError(IntegrityError):
    """Raised when hashing the integrity file itself."""

    code = "ENOTALW"


class UnsupportedAlgorithmError(IntegrityError):
    code = "ENOSUP"


class UnsupportedEncodingError(IntegrityError):
    code = "ENOSUP"


class UnsupportedPathError(IntegrityError):
    code = "ENOSUP"


class InvalidManifestNameError(IntegrityError):
    code = "EINVNAME"


class UnknownSchemaVersionError(IntegrityError):
    code = "EINVER"


class VersionMismatchError(IntegrityError):
    code = "EINVER"


class SchemaValidationError(IntegrityError):
    """Raised when a manifest does not match its schema.

    The validator's error text is kept on ``details``.
    """

    code = "EVALER"

    def __init__(self, details: str):
        self.details = details
        super().__init__(details)


class ProjectManifestError(IntegrityError):
    code = "ENOMANIFEST"

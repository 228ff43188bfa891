# src/pathcrypt/errors.py
"""
Custom exception classes for the pathcrypt engine.
"""


class PathcryptError(Exception):
    """Base class for exceptions in this package."""

    pass


class InvalidParameters(PathcryptError):
    """Malformed request: empty secrets, bad counts, unknown operation, illegal source."""

    pass


class UnsupportedAlgorithm(PathcryptError):
    """Unknown key-derivation hash algorithm or cipher mode identifier."""

    pass


class FileOperationError(PathcryptError):
    """Errors during file system operations (read, write, rename, delete)."""

    def __init__(self, message: str, filepath: str = None):
        super().__init__(message)
        self.filepath = filepath

    def __str__(self):
        if self.filepath:
            return f"{super().__str__()} (File: {self.filepath})"
        return super().__str__()


class PathNotFound(FileOperationError):
    """A file or directory that was expected to exist does not."""

    pass


class PermissionDenied(FileOperationError):
    """A file or directory could not be read or written due to permissions."""

    pass


class DecryptionFailed(PathcryptError):
    """Wrong key, wrong mode, or a truncated or tampered envelope."""

    pass

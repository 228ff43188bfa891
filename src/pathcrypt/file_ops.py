# src/pathcrypt/file_ops.py
"""
Per-file processing: read, transform, verified write, optional filename
anonymization and source deletion, and dry-run simulation.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from . import crypto_ops
from .constants import (ENCRYPTED_EXTENSION, TEMP_FILE_PREFIX,
                        TEMP_FILE_SUFFIX)
from .errors import (DecryptionFailed, FileOperationError, InvalidParameters,
                     PathNotFound, PathcryptError, PermissionDenied)
from .key_derivation import DerivedKeyMaterial
from .models import FileOutcome, FileTask, OperationRequest


def _wrap_os_error(error: OSError, path: Path, action: str) -> FileOperationError:
    """Maps an OSError onto the package's file error taxonomy."""
    if isinstance(error, FileNotFoundError):
        return PathNotFound(f"{action} failed, not found: {error}", filepath=str(path))
    if isinstance(error, PermissionError):
        return PermissionDenied(f"{action} failed, permission denied: {error}", filepath=str(path))
    return FileOperationError(f"{action} failed: {error}", filepath=str(path))


# --- Target Naming ---
def encrypted_name(source_name: str, material: DerivedKeyMaterial, anon: bool) -> str:
    """Output filename for an encrypted file."""
    base = crypto_ops.anonymize_filename(source_name, material) if anon else source_name
    return base + ENCRYPTED_EXTENSION


def decrypted_name(source_name: str, embedded_name: Optional[str]) -> str:
    """Output filename for a decrypted file: the embedded original name, else the suffix stripped."""
    if embedded_name is not None:
        if Path(embedded_name).name != embedded_name or embedded_name in (".", ".."):
            raise DecryptionFailed(f"Embedded filename is not a plain filename: {embedded_name!r}")
        return embedded_name
    if source_name.endswith(ENCRYPTED_EXTENSION) and len(source_name) > len(ENCRYPTED_EXTENSION):
        return source_name[: -len(ENCRYPTED_EXTENSION)]
    return source_name


# --- Dry-run Checks ---
def _nearest_existing_dir(path: Path) -> Path:
    candidate = path
    while not candidate.exists():
        if candidate.parent == candidate:
            break
        candidate = candidate.parent
    return candidate


def check_writable(target_dir: Path) -> None:
    """Raises if files could not be created in target_dir (or the folder that would hold it)."""
    existing = _nearest_existing_dir(target_dir)
    if not existing.is_dir():
        raise FileOperationError(
            f"Target location is not a directory: {existing}", filepath=str(existing)
        )
    if not os.access(existing, os.W_OK | os.X_OK):
        raise PermissionDenied(f"Target location is not writable: {existing}", filepath=str(existing))


# --- Writing ---
def write_verified(target: Path, data: bytes) -> None:
    """
    Writes data through a temporary file in the target directory and renames it
    into place, then checks the size on disk. A failed write leaves no partial file.
    """
    # Temp name length is fixed so any target name that fits also fits here
    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent, prefix=TEMP_FILE_PREFIX, suffix=TEMP_FILE_SUFFIX
        )
    except OSError as e:
        raise _wrap_os_error(e, target, "Write") from e
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise _wrap_os_error(e, target, "Write") from e

    try:
        written = target.stat().st_size
    except OSError as e:
        raise _wrap_os_error(e, target, "Verify") from e
    if written != len(data):
        raise FileOperationError(
            f"Verification failed: wrote {written} of {len(data)} bytes", filepath=str(target)
        )


# --- FileUnit ---
def process(
    task: FileTask, material: DerivedKeyMaterial, request: OperationRequest
) -> FileOutcome:
    """
    Encrypts or decrypts one file. Never raises: every failure is returned as a
    failed FileOutcome, and the source is only deleted after a verified write.
    """
    source = task.source
    try:
        try:
            data: bytes = source.read_bytes()
        except OSError as e:
            raise _wrap_os_error(e, source, "Read") from e

        if request.is_encrypt:
            processed = crypto_ops.encode(
                data, material, request.mode, source.name if request.anon else None
            )
            output_path = task.target_dir / encrypted_name(source.name, material, request.anon)
        else:
            processed, embedded_name = crypto_ops.decode(data, material, request.mode)
            output_path = task.target_dir / decrypted_name(source.name, embedded_name)

        if output_path.absolute() == source.absolute():
            raise InvalidParameters(f"Output would overwrite its own source: {source}")

        if request.dry_run:
            check_writable(task.target_dir)
            logging.debug(f"Dry run: would write '{output_path}'")
            return FileOutcome(task, True, output_path=output_path, simulated=True)

        try:
            task.target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise _wrap_os_error(e, task.target_dir, "Create directory") from e
        write_verified(output_path, processed)
        logging.info(f"{request.operation.capitalize()}ed '{source.name}' -> '{output_path.name}'")

        if request.delete_src:
            try:
                source.unlink()
                logging.debug(f"Deleted source '{source}'")
            except OSError as e:
                # Output is already safely written, the file still counts as processed
                return FileOutcome(
                    task,
                    True,
                    output_path=output_path,
                    reason=f"Source not deleted: {e}",
                    error_type=type(_wrap_os_error(e, source, "Delete")).__name__,
                )
        return FileOutcome(task, True, output_path=output_path)

    except PathcryptError as e:
        return FileOutcome(task, False, reason=str(e), error_type=type(e).__name__)
    except Exception as e:  # Catch-all for unexpected
        logging.critical(f"Unexpected error processing {source.name}: {e}", exc_info=True)
        return FileOutcome(task, False, reason=f"Unexpected: {e}", error_type=type(e).__name__)

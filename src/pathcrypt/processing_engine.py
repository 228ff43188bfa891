# src/pathcrypt/processing_engine.py
"""
Engine entrypoints: pre-flight scan, and encrypt/decrypt of a single file or a
directory tree. Each call is self-contained; no state survives between requests.
"""
import logging
import platform
from pathlib import Path
from typing import Iterable, Optional

from .constants import (CIPHER_MODES, ENCRYPTED_EXTENSION, HASH_ALGORITHMS,
                        ILLEGAL_SOURCE_LOCATIONS, OPERATIONS)
from .directory_walker import build_tasks, scan, scan_file
from .errors import (InvalidParameters, PathcryptError, PathNotFound,
                     UnsupportedAlgorithm)
from .events import EventChannel
from .key_derivation import DerivedKeyMaterial, derive, wipe_buffer
from .models import OperationalInfo, OperationRequest, OperationResult
from .results import ResultAggregator
from .scheduler import CancelToken, WorkScheduler

_OS_LABELS = {"Linux": "linux", "Darwin": "macos", "Windows": "windows"}


def operating_system() -> str:
    system = platform.system()
    return _OS_LABELS.get(system, system.lower() or "unknown")


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


# --- Validation ---
def validate_request(request: OperationRequest, is_directory: bool) -> None:
    """
    Rejects malformed requests before any file is touched.

    Raises:
        InvalidParameters, UnsupportedAlgorithm, PathNotFound
    """
    if request.operation not in OPERATIONS:
        raise InvalidParameters(f"Invalid operation '{request.operation}'. Expected one of {OPERATIONS}.")
    if request.mode not in CIPHER_MODES:
        raise UnsupportedAlgorithm(f"Unsupported cipher mode '{request.mode}'. Expected one of {CIPHER_MODES}.")
    if request.hash_with not in HASH_ALGORITHMS:
        raise UnsupportedAlgorithm(
            f"Unsupported key derivation algorithm '{request.hash_with}'. Expected one of {HASH_ALGORITHMS}."
        )
    if not request.password or not any(request.password):
        raise InvalidParameters("Password must not be empty.")
    if not request.salt:
        raise InvalidParameters("Salt must not be empty.")
    if not _is_positive_int(request.iterations):
        raise InvalidParameters(f"Iterations must be a positive integer, got {request.iterations!r}")
    if not _is_positive_int(request.threads):
        raise InvalidParameters(f"Threads must be a positive integer, got {request.threads!r}")

    source = request.source_path
    if not source.exists():
        raise PathNotFound(f"Source path does not exist: {source}", filepath=str(source))
    if is_directory and not source.is_dir():
        raise InvalidParameters(f"Source is not a directory: {source}")
    if not is_directory and source.is_dir():
        raise InvalidParameters(f"Source is a directory, not a file: {source}")


def check_source_location(source: Path) -> None:
    """
    Refuses well-known system roots as a source. The path is compared both as
    given and fully resolved, so `..` segments and symlinks cannot bypass it.
    """
    source = Path(source)
    resolved = source.resolve()
    candidates = {str(source), source.as_posix(), str(resolved), resolved.as_posix()}
    if not candidates.isdisjoint(ILLEGAL_SOURCE_LOCATIONS):
        raise InvalidParameters(f"Refusing to process system location: {source} ({resolved})")


def check_not_encrypted(files: Iterable[Path]) -> None:
    """Refuses to encrypt a tree that already holds encrypted files."""
    for file_path in files:
        if file_path.name.endswith(ENCRYPTED_EXTENSION):
            raise InvalidParameters(
                f"Found an already encrypted file: {file_path}. "
                "Double encryption is not supported."
            )


# --- Pre-flight ---
def scan_operational_info(source_path: Path, is_directory: bool) -> OperationalInfo:
    """
    Counts files, folders and bytes under a path without modifying anything.
    The folder count excludes the root itself.

    Raises:
        PathNotFound, PermissionDenied, InvalidParameters
    """
    path = Path(source_path)
    if not path.exists():
        raise PathNotFound(f"Source path does not exist: {path}", filepath=str(path))

    scan_result = scan(path) if is_directory else scan_file(path)
    return OperationalInfo(
        operating_system=operating_system(),
        file_count=scan_result.file_count,
        folder_count=scan_result.folder_count,
        total_size_bytes=scan_result.total_size,
        errors=tuple(scan_result.errors),
    )


# --- Execution ---
def _execute(
    request: OperationRequest,
    is_directory: bool,
    events: Optional[EventChannel],
    cancel_token: Optional[CancelToken],
) -> OperationResult:
    events = events if events is not None else EventChannel()
    events.verbose = request.verbose
    material: Optional[DerivedKeyMaterial] = None
    logging.info(
        f"Request: {request.operation} {'directory' if is_directory else 'file'} "
        f"'{request.source_path}' (mode={request.mode}, hash={request.hash_with}, "
        f"iterations={request.iterations}, threads={request.threads}, anon={request.anon}, "
        f"dry_run={request.dry_run}, delete_src={request.delete_src})"
    )
    try:
        try:
            validate_request(request, is_directory)
            source = request.source_path.absolute()
            check_source_location(source)
            if is_directory:
                scan_result = scan(source)
                source_root = source
            else:
                scan_result = scan_file(source)
                source_root = source.parent
            if request.is_encrypt:
                check_not_encrypted(scan_result.file_list)

            for bad_path, message in scan_result.errors:
                events.error(f"Cannot read '{bad_path}': {message}")
            tasks = build_tasks(
                scan_result,
                source_root,
                request.target_path,
                request.operation,
                include_all=not is_directory,
            )
            events.info(f"Found {len(tasks)} file(s) to {request.operation}")

            events.info(f"Generating a secure key based on {request.hash_with}")
            material = derive(request.password, request.salt, request.hash_with, request.iterations)
            events.info("Key generation complete")
        except PathcryptError as e:
            events.error(str(e))
            return ResultAggregator.failed_to_start(str(e))

        scheduler = WorkScheduler(
            threads=request.threads if is_directory else 1,
            events=events,
            cancel_token=cancel_token,
        )
        return scheduler.run(tasks, material, request, unreadable=scan_result.errors)
    finally:
        if material is not None:
            material.wipe()
        wipe_buffer(request.password)
        events.close()


def process_file(
    request: OperationRequest,
    events: Optional[EventChannel] = None,
    cancel_token: Optional[CancelToken] = None,
) -> OperationResult:
    """Encrypts or decrypts a single file. The channel is closed when the call returns."""
    return _execute(request, False, events, cancel_token)


def process_folder(
    request: OperationRequest,
    events: Optional[EventChannel] = None,
    cancel_token: Optional[CancelToken] = None,
) -> OperationResult:
    """Encrypts or decrypts every file under a directory. The channel is closed when the call returns."""
    return _execute(request, True, events, cancel_token)

# src/pathcrypt/directory_walker.py
"""
Read-only enumeration of files and folders under a source path.

Symbolic links are never followed and never processed: a link to a file or a
directory anywhere below the root is skipped and logged. Unreadable entries
below the root are recorded in `ScanResult.errors` without stopping the scan.
"""
import logging
import os
import stat
from pathlib import Path
from typing import List, Optional

from .constants import ENCRYPTED_EXTENSION
from .errors import InvalidParameters, PathNotFound, PermissionDenied
from .models import FileTask, ScanResult


def _raise_for_root(root: Path, error: OSError) -> None:
    if isinstance(error, PermissionError):
        raise PermissionDenied(f"Cannot read {root}: {error}", filepath=str(root)) from error
    if isinstance(error, (FileNotFoundError, NotADirectoryError)):
        raise PathNotFound(f"Directory not found: {root}", filepath=str(root)) from error
    raise PermissionDenied(f"Cannot access {root}: {error}", filepath=str(root)) from error


def scan(root: Path) -> ScanResult:
    """
    Recursively counts files, folders and total size under `root`.

    Raises:
        PathNotFound if `root` does not exist or is not a directory.
        InvalidParameters if `root` is itself a symbolic link.
        PermissionDenied if `root` itself cannot be listed.
    """
    root = Path(root).absolute()
    if root.is_symlink():
        raise InvalidParameters(f"Symbolic links are not processed: {root}")
    if not root.is_dir():
        raise PathNotFound(f"Directory not found: {root}", filepath=str(root))

    result = ScanResult()
    pending: List[Path] = [root]
    while pending:
        current = pending.pop()
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except OSError as e:
            if current == root:
                _raise_for_root(root, e)
            logging.warning(f"Cannot list '{current}': {e}. Skipping this directory.")
            result.errors.append((current, str(e)))
            continue

        for entry in entries:
            entry_path = Path(entry.path)
            try:
                if entry.is_symlink():
                    logging.info(f"Skipping symbolic link '{entry_path}'")
                    continue
                if entry.is_dir(follow_symlinks=False):
                    result.folder_count += 1
                    pending.append(entry_path)
                elif entry.is_file(follow_symlinks=False):
                    size = entry.stat(follow_symlinks=False).st_size
                    result.file_list.append(entry_path)
                    result.sizes[entry_path] = size
                    result.total_size += size
                else:
                    logging.info(f"Skipping special file '{entry_path}'")
            except OSError as e:
                logging.warning(f"Cannot stat '{entry_path}': {e}")
                result.errors.append((entry_path, str(e)))

    # Sort files by path for deterministic processing order
    result.file_list.sort(key=lambda p: str(p))
    result.file_count = len(result.file_list)
    logging.info(
        f"Scanned '{root}': {result.file_count} files, {result.folder_count} folders, "
        f"{result.total_size} bytes, {len(result.errors)} unreadable entries"
    )
    return result


def scan_file(path: Path) -> ScanResult:
    """The single-file counterpart of `scan`."""
    path = Path(path).absolute()
    try:
        stat_result = path.lstat()
    except FileNotFoundError as e:
        raise PathNotFound(f"File not found: {path}", filepath=str(path)) from e
    except PermissionError as e:
        raise PermissionDenied(f"Cannot read {path}: {e}", filepath=str(path)) from e
    if stat.S_ISLNK(stat_result.st_mode):
        raise InvalidParameters(f"Symbolic links are not processed: {path}")
    if not stat.S_ISREG(stat_result.st_mode):
        raise InvalidParameters(f"Not a regular file: {path}")
    return ScanResult(
        file_count=1,
        folder_count=0,
        total_size=stat_result.st_size,
        file_list=[path],
        sizes={path: stat_result.st_size},
    )


def build_tasks(
    scan_result: ScanResult,
    source_root: Path,
    target_root: Optional[Path],
    operation: str,
    include_all: bool = False,
) -> List[FileTask]:
    """
    Maps scanned files to FileTasks, mirroring the source tree under `target_root`.
    Decryption only picks up files carrying the encrypted extension unless
    `include_all` is set (an explicitly named single file).
    """
    source_root = Path(source_root).absolute()
    target_root = Path(target_root).absolute() if target_root else source_root
    tasks: List[FileTask] = []
    for file_path in scan_result.file_list:
        if operation == "decrypt" and not include_all and not file_path.name.endswith(ENCRYPTED_EXTENSION):
            logging.info(f"Skipping '{file_path.name}': not an encrypted file.")
            continue
        relative_parent = file_path.parent.relative_to(source_root)
        tasks.append(
            FileTask(
                source=file_path,
                target_dir=target_root / relative_parent,
                size=scan_result.sizes.get(file_path, 0),
            )
        )
    return tasks

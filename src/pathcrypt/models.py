# src/pathcrypt/models.py
"""
Dataclasses for the pathcrypt engine.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Optional, Tuple, Union

from .constants import (DEFAULT_HASH, DEFAULT_ITERATIONS, DEFAULT_MODE,
                        DEFAULT_THREADS)

Secret = Union[str, bytes, bytearray]


@dataclass(kw_only=True, slots=True, eq=False)
class OperationRequest:
    """One self-contained encrypt or decrypt request for a file or directory."""

    source_path: Path
    password: Secret = field(repr=False)
    salt: Union[str, bytes]
    operation: Literal["encrypt", "decrypt"] = field(default="encrypt")
    target_path: Optional[Path] = field(default=None)
    mode: str = field(default=DEFAULT_MODE)
    hash_with: str = field(default=DEFAULT_HASH)
    iterations: int = field(default=DEFAULT_ITERATIONS)
    threads: int = field(default=DEFAULT_THREADS)
    delete_src: bool = field(default=False)
    anon: bool = field(default=False)
    dry_run: bool = field(default=False)
    verbose: bool = field(default=False)

    def __post_init__(self) -> None:
        self.source_path = Path(self.source_path)
        if self.target_path is not None:
            self.target_path = Path(self.target_path)
        # Password lives in a mutable buffer so it can be zeroed after the run
        if isinstance(self.password, str):
            self.password = bytearray(self.password.encode("utf-8"))
        elif isinstance(self.password, (bytes, memoryview)):
            self.password = bytearray(self.password)
        if isinstance(self.salt, str):
            self.salt = self.salt.encode("utf-8")

    @property
    def is_encrypt(self) -> bool:
        return self.operation == "encrypt"


@dataclass(frozen=True, slots=True)
class FileTask:
    """A single file scheduled for processing."""

    source: Path  # Absolute path to the source file
    target_dir: Path  # Directory the output file is written into
    size: int = 0


@dataclass(slots=True)
class FileOutcome:
    """Result of processing one FileTask."""

    task: FileTask
    success: bool
    output_path: Optional[Path] = None
    reason: Optional[str] = None
    error_type: Optional[str] = None
    simulated: bool = False


@dataclass(kw_only=True, slots=True)
class ScanResult:
    """Recursive enumeration of a directory tree."""

    file_count: int = field(default=0)
    folder_count: int = field(default=0)
    total_size: int = field(default=0)
    file_list: List[Path] = field(default_factory=list)
    sizes: Dict[Path, int] = field(default_factory=dict, repr=False)
    errors: List[Tuple[Path, str]] = field(default_factory=list, repr=False)


@dataclass(frozen=True, kw_only=True, slots=True)
class OperationalInfo:
    """Pre-flight statistics for a file or directory target."""

    operating_system: str
    file_count: int
    folder_count: int
    total_size_bytes: int
    errors: Tuple[Tuple[Path, str], ...] = field(default=(), repr=False)


@dataclass(frozen=True, kw_only=True, slots=True)
class OperationResult:
    """Terminal value of one OperationRequest."""

    success: bool
    message: str
    success_count: int = field(default=0)
    failed_count: int = field(default=0)
    cancelled: bool = field(default=False)
    outcomes: Tuple[FileOutcome, ...] = field(default=(), repr=False)
    unreadable: Tuple[Tuple[Path, str], ...] = field(default=(), repr=False)

    @property
    def processed_count(self) -> int:
        return self.success_count + self.failed_count

"""
Shared pytest fixtures for pathcrypt tests.
"""
from pathlib import Path
from typing import Dict

import pytest

from pathcrypt.key_derivation import derive
from pathcrypt.models import OperationRequest

PASSWORD = "p"
SALT = "s"


@pytest.fixture
def material():
    """Key material for password 'p', salt 's', PBKDF2, 10 iterations."""
    return derive(PASSWORD, SALT, "pbkdf2", 10)


@pytest.fixture
def other_material():
    return derive("not-the-password", SALT, "pbkdf2", 10)


@pytest.fixture
def make_request():
    """Factory for OperationRequests with test-friendly defaults."""

    def _make(source_path, **overrides) -> OperationRequest:
        params = dict(
            source_path=source_path,
            password=PASSWORD,
            salt=SALT,
            operation="encrypt",
            iterations=10,
            threads=2,
        )
        params.update(overrides)
        return OperationRequest(**params)

    return _make


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """
    A small directory tree:
        src/a.txt (10 B), src/empty.bin (0 B), src/nested/big.bin (1 MiB)
    """
    root = tmp_path / "src"
    (root / "nested").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"0123456789")
    (root / "empty.bin").write_bytes(b"")
    (root / "nested" / "big.bin").write_bytes(bytes(range(256)) * 4096)
    return root


def snapshot(root: Path) -> Dict[str, bytes]:
    """Relative path -> content for every file under root."""
    return {
        str(p.relative_to(root).as_posix()): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }

"""
Helpers for the one-value status files and artifacts the commands exchange.
"""

import hashlib
import os
from pathlib import Path

CHECKSUM_CHUNK = 1024 * 1024


def ensure_dir(path: str | Path) -> Path:
    """Ensure directory exists, creating if necessary."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def read_text(path: str | Path) -> str:
    return Path(path).read_text()


def read_value(path: str | Path, default: str | None = None) -> str | None:
    """Read a single-value status file, stripped. Returns default when absent or empty."""
    p = Path(path)
    if not p.is_file():
        return default
    value = p.read_text().strip()
    return value or default


def write_text(path: str | Path, content: str) -> None:
    """Write text to file, creating parent directories if needed."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content)


def write_value(path: str | Path, value: str) -> None:
    """Write a single-value status file with a trailing newline."""
    write_text(path, f"{value}\n")


def write_secret(path: str | Path, content: str, mode: int = 0o400) -> None:
    """Write key material and restrict its permissions."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    if p.exists():
        os.chmod(p, 0o600)
    p.write_text(content)
    os.chmod(p, mode)


def sha256_file(path: str | Path) -> str:
    """Hex SHA-256 of a file, read in 1 MiB chunks so archives stay out of memory."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHECKSUM_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()

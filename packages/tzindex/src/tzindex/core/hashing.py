"""Content digests for boundary datasets.

The engine reports the digest of the file it was built from, and the dataset
build script records the same digests in its manifest and ``SHA256SUMS``.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tzindex.core.errors import DataAcquisitionFailure

_READ_SIZE = 1 << 20


@dataclass(frozen=True)
class FileDigest:
    path: Path
    size_bytes: int
    mtime_ns: int
    sha256_hex: str

    def sums_line(self, relative_to: Optional[Path] = None) -> str:
        """One ``SHA256SUMS`` line (``<hex>  <path>``)."""
        name = self.path
        if relative_to is not None and self.path.is_relative_to(relative_to):
            name = self.path.relative_to(relative_to)
        return f"{self.sha256_hex}  {name.as_posix()}"


def sha256_file(path: Path, chunk_size: int = _READ_SIZE) -> FileDigest:
    """Digest ``path`` and fail if it is rewritten while being read."""
    try:
        before = path.stat()
        h = hashlib.sha256()
        with path.open("rb") as handle:
            for chunk in iter(lambda: handle.read(chunk_size), b""):
                h.update(chunk)
        after = path.stat()
    except OSError as exc:
        raise DataAcquisitionFailure(f"unable to read dataset '{path}': {exc}") from exc
    if (before.st_size, before.st_mtime_ns) != (after.st_size, after.st_mtime_ns):
        raise DataAcquisitionFailure(f"dataset '{path}' changed while it was being hashed")
    return FileDigest(
        path=path,
        size_bytes=after.st_size,
        mtime_ns=after.st_mtime_ns,
        sha256_hex=h.hexdigest(),
    )

"""Content-addressed file sync: fetch only what is missing or changed."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any

from .manifest import ManifestEntry
from .nodes import FileDescriptor, LocalPath, path_str


def file_matches(path: Path, digest: bytes | None, algorithm: str = "md5", chunk_size: int = 65536) -> bool:
    """True if ``path`` exists and hashes to ``digest``."""
    if digest is None:
        return False
    hash_func = hashlib.new(algorithm)
    try:
        with path.open("rb") as fh:
            while True:
                data = fh.read(chunk_size)
                if not data:
                    break
                hash_func.update(data)
    except FileNotFoundError:
        return False
    return hash_func.digest() == digest


class Downloader:
    """Make local files under ``root`` equal to remote file descriptors."""

    def __init__(self, client: Any, root: Path, algorithm: str = "md5", chunk_size: int = 65536) -> None:
        self.client = client
        self.root = root
        self.algorithm = algorithm
        self.chunk_size = chunk_size
        self.transferred = 0
        self.skipped = 0

    def target(self, path: LocalPath) -> Path:
        return self.root.joinpath(*path)

    async def sync(self, path: LocalPath, descriptor: FileDescriptor) -> ManifestEntry:
        """Ensure ``path`` holds ``descriptor``'s content; return its manifest entry."""
        target = self.target(path)
        if file_matches(target, descriptor.digest, self.algorithm, self.chunk_size):
            logging.debug("up to date %s", path_str(path))
            self.skipped += 1
        else:
            logging.debug("download %s", path_str(path))
            target.parent.mkdir(parents=True, exist_ok=True)
            async with self.client.stream_binary(descriptor.uuid) as chunks:
                with target.open("wb") as fh:
                    async for chunk in chunks:
                        fh.write(chunk)
            self.transferred += 1
        return ManifestEntry(
            path=path,
            upload_dates=descriptor.upload_dates,
            description=descriptor.description,
        )

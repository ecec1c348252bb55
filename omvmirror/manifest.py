"""Collect completed downloads and write the bestanden.txt manifest."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from .errors import PathCollisionError
from .nodes import CaseProject, LocalPath, path_str

MANIFEST_NAME = "bestanden.txt"
ATTRIBUTION = "automatisch gegenereerd met omvmirror"
FILES_HEADING = "## Bestanden:"
# "<path> (<dates>): <description>". A file name may itself contain " (...): ",
# so every match of this separator is a candidate end of the path.
SEPARATOR = re.compile(r" \((?P<dates>[^()]*)\):(?: |$)")


@dataclass(frozen=True)
class ManifestEntry:
    path: LocalPath
    upload_dates: tuple[str, ...]
    description: str = ""

    def line(self) -> str:
        description = " ".join(self.description.split())
        return f"{path_str(self.path)} ({'/'.join(self.upload_dates)}): {description}"


class ManifestCollector:
    """Append-only sink for entries produced by concurrent download tasks.

    All tasks run on one event loop and never await between the check and the
    update below, so no lock is needed.
    """

    def __init__(self) -> None:
        self._entries: list[ManifestEntry] = []
        self._claims: dict[LocalPath, str] = {}

    def claim(self, path: LocalPath, file_uuid: str) -> bool:
        """Reserve ``path`` for ``file_uuid``.

        Returns False if the same file already holds it (duplicate listing),
        raises PathCollisionError if another file does.
        """
        owner = self._claims.get(path)
        if owner is None:
            self._claims[path] = file_uuid
            return True
        if owner == file_uuid:
            logging.debug("Duplicate listing of %s at %s", file_uuid, path_str(path))
            return False
        raise PathCollisionError(path_str(path), owner, file_uuid)

    def append(self, entry: ManifestEntry) -> None:
        self._entries.append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> list[ManifestEntry]:
        """Entries sorted by local path."""
        return sorted(self._entries, key=lambda e: path_str(e.path))


def footer_line(case_id: str, generated_at: datetime) -> str:
    return f"{ATTRIBUTION} {case_id} op {generated_at.isoformat(timespec='seconds')}"


def write_manifest(
    path: Path,
    project: CaseProject,
    entries: list[ManifestEntry],
    generated_at: datetime,
) -> Path:
    """Write the manifest in one go; ``entries`` must already be sorted."""
    lines = [
        f"# {project.title}",
        f"## {footer_line(project.case_id, generated_at)}",
        "",
        FILES_HEADING,
    ]
    lines.extend(entry.line() for entry in entries)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logging.info("Wrote %s manifest entries to %s", len(entries), path)
    return path


def candidate_paths(line: str) -> list[str]:
    """Possible path prefixes of an entry line, shortest first."""
    return [line[: match.start()] for match in SEPARATOR.finditer(line) if match.start() > 0]


def read_manifest(path: Path, exists: Callable[[str], bool] | None = None) -> list[str]:
    """Return the file paths listed in a manifest written by write_manifest.

    When a line has more than one possible split, the shortest candidate for
    which ``exists`` holds is taken; without ``exists`` the shortest one is.
    """
    paths: list[str] = []
    in_files = False
    for line in path.read_text(encoding="utf-8").splitlines():
        if line == FILES_HEADING:
            in_files = True
            continue
        if not in_files or not line.strip():
            continue
        candidates = candidate_paths(line)
        if not candidates:
            raise ValueError(f"{path}: unparseable manifest line {line!r}")
        if exists is not None:
            found = [candidate for candidate in candidates if exists(candidate)]
            candidates = found or candidates
        paths.append(candidates[0])
    return paths

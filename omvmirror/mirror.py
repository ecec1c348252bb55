"""Mirror one omgevingsloket case into a local directory.

Steps:
A) Resolve the case id to its project header.
B) Walk the subjects and procedure trees, syncing every attachment.
C) Render inhoud.html from what the walk discovered.
D) Write the sorted bestanden.txt manifest.

C and D only run once B has fully succeeded, so a failed run leaves
downloaded files behind but never a report or manifest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiohttp

from .client import ResourceClient
from .config import Config
from .downloader import Downloader
from .manifest import MANIFEST_NAME, ManifestCollector, write_manifest
from .nodes import CaseProject
from .report import REPORT_NAME, render_report
from .walker import Walker


@dataclass(frozen=True)
class MirrorResult:
    project: CaseProject
    files: int
    transferred: int
    skipped: int
    manifest_path: Path
    report_path: Path | None


async def fetch_project(client: Any, case_id: str) -> CaseProject:
    """Resolve a normalized case id to its header record."""
    header = await client.get("inzage/projecten/header", {"projectnummer": case_id})
    return CaseProject.from_record(case_id, header)


async def mirror_case(
    client: Any,
    config: Config,
    case_id: str,
    generated_at: datetime | None = None,
) -> MirrorResult:
    """Run phases A-D against ``client``."""
    output_dir = Path(config.output_dir)
    project = await fetch_project(client, case_id)
    logging.info("Mirroring %s", project.title)

    collector = ManifestCollector()
    downloader = Downloader(client, output_dir, config.digest, config.chunk_size)
    outline = await Walker(client, downloader, collector).mirror(project)

    generated_at = generated_at or datetime.now(timezone.utc)
    case_dir = output_dir / case_id
    report_path = None
    if config.report:
        report_path = case_dir / REPORT_NAME
        case_dir.mkdir(parents=True, exist_ok=True)
        report_path.write_text(render_report(project, outline, generated_at), encoding="utf-8")

    manifest_path = write_manifest(case_dir / MANIFEST_NAME, project, collector.entries(), generated_at)
    return MirrorResult(
        project=project,
        files=len(collector),
        transferred=downloader.transferred,
        skipped=downloader.skipped,
        manifest_path=manifest_path,
        report_path=report_path,
    )


async def run(config: Config, case_id: str) -> int:
    """Mirror ``case_id`` over a fresh HTTP session. Return process exit code."""
    logging.info("Starting mirror with config: %s", config)
    connector = aiohttp.TCPConnector(limit=max(8, config.concurrency * 2))

    async with aiohttp.ClientSession(connector=connector) as session:
        client = ResourceClient(session, config)
        result = await mirror_case(client, config, case_id)

    logging.info(
        "Summary: case=%s files=%s downloaded=%s up_to_date=%s peak_in_flight=%s manifest=%s",
        case_id,
        result.files,
        result.transferred,
        result.skipped,
        client.gate.peak,
        result.manifest_path,
    )
    return 0

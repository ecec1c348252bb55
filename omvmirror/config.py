"""Runtime configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

API_ROOT = "https://omgevingsloketinzage.omgeving.vlaanderen.be/proxy-omv-up/rs/v1/"


@dataclass(slots=True)
class Config:
    """Runtime configuration loaded from config.yaml."""

    api_root: str = API_ROOT
    output_dir: str = "."
    concurrency: int = 16
    delay_sec: float = 0.0
    page_size: int = 1000
    timeout_sec: float | None = None
    chunk_size: int = 65536
    digest: str = "md5"
    report: bool = True


def load_config(config_path: Path) -> Config:
    """Load config.yaml and apply defaults for missing keys."""
    data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError("config.yaml must be a mapping")

    defaults = Config()
    timeout = data.get("timeout_sec", defaults.timeout_sec)
    api_root = str(data.get("api_root", defaults.api_root))
    return Config(
        api_root=api_root.rstrip("/") + "/",
        output_dir=str(data.get("output_dir", defaults.output_dir)),
        concurrency=max(1, int(data.get("concurrency", defaults.concurrency))),
        delay_sec=float(data.get("delay_sec", defaults.delay_sec)),
        page_size=int(data.get("page_size", defaults.page_size)),
        timeout_sec=None if timeout is None else float(timeout),
        chunk_size=int(data.get("chunk_size", defaults.chunk_size)),
        digest=str(data.get("digest", defaults.digest)),
        report=bool(data.get("report", defaults.report)),
    )

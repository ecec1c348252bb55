"""Command line entry point: ``omvmirror CASE_ID``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .casenumber import normalize_case_id
from .config import Config, load_config
from .errors import MirrorError, ValidationError
from .mirror import run


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """CLI options."""
    parser = argparse.ArgumentParser(
        prog="omvmirror",
        description="Mirror the attachments of an omgevingsloket case (OMV number)",
    )
    parser.add_argument("case_id", metavar="CASE_ID", help="OMV number, e.g. OMV_2023012345 or 2023012345")
    parser.add_argument("--config", help="Path to config YAML file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every download and skip")
    return parser.parse_args(argv)


def _describe(exc: BaseException) -> str:
    parts = [str(exc)]
    cause = exc.__cause__
    while cause is not None:
        parts.append(f"caused by {cause.__class__.__name__}: {cause}")
        cause = cause.__cause__
    return "; ".join(parts)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    try:
        case_id = normalize_case_id(args.case_id)
    except ValidationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    config = Config()
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            raise SystemExit(f"config file not found: {config_path}")
        config = load_config(config_path)

    try:
        code = asyncio.run(run(config, case_id))
    except (MirrorError, OSError) as exc:
        logging.error("Mirror of %s failed: %s", case_id, _describe(exc))
        raise SystemExit(1) from exc
    raise SystemExit(code)


if __name__ == "__main__":
    main()

"""Check a mirrored case directory against its bestanden.txt manifest."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .casenumber import normalize_case_id
from .errors import ValidationError
from .manifest import MANIFEST_NAME, read_manifest
from .report import REPORT_NAME

GENERATED = {MANIFEST_NAME, REPORT_NAME}


@dataclass
class VerifyResult:
    ok: int = 0
    missing: list[str] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)
    problems: list[str] = field(default_factory=list)

    @property
    def ng(self) -> int:
        return len(self.missing) + len(self.extra) + len(self.problems)


def iter_mirrored_files(output_dir: Path, case_dir: Path) -> Iterable[str]:
    for path in case_dir.rglob("*"):
        if path.is_file() and not (path.parent == case_dir and path.name in GENERATED):
            yield path.relative_to(output_dir).as_posix()


def verify_mirror(output_dir: Path, case_id: str) -> VerifyResult:
    result = VerifyResult()
    case_dir = output_dir / case_id
    manifest_path = case_dir / MANIFEST_NAME

    if not case_dir.is_dir():
        result.problems.append(f"case directory not found: {case_dir}")
        return result
    if not manifest_path.exists():
        result.problems.append(f"manifest not found: {manifest_path}")
        return result
    try:
        listed = set(read_manifest(manifest_path, lambda rel: (output_dir / rel).is_file()))
    except (OSError, ValueError) as e:
        result.problems.append(f"failed to load manifest: {e}")
        return result

    actual = set(iter_mirrored_files(output_dir, case_dir))
    for rel in sorted(listed):
        if rel in actual:
            result.ok += 1
        else:
            result.missing.append(rel)
    result.extra = sorted(actual - listed)
    return result


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="omvmirror-verify", description="Verify a mirrored case")
    parser.add_argument("case_id", metavar="CASE_ID")
    parser.add_argument("--output-dir", default=".", help="Directory holding the <case id> mirror")
    args = parser.parse_args(argv)

    try:
        case_id = normalize_case_id(args.case_id)
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    result = verify_mirror(Path(args.output_dir), case_id)
    for problem in result.problems:
        print(f"[NG] {problem}")
    for rel in result.missing:
        print(f"[NG] missing file: {rel}")
    for rel in result.extra:
        print(f"[NG] extra file not in manifest: {rel}")

    print(f"OK: {result.ok}")
    print(f"NG: {result.ng}")
    return 1 if result.ng > 0 else 0


def run_main() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run_main()

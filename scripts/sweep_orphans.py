#!/usr/bin/env python3
"""
Remove media left behind by aborted uploads and interrupted deletions.

Asset directories without a database row, and temp uploads, are removed once
they are older than the grace period (ORPHAN_GRACE_SECONDS, default 1 hour).

Usage:
    python scripts/sweep_orphans.py [--dry-run] [--grace-seconds N]
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.application.use_cases.sweep_orphans import SweepOrphansUseCase  # noqa: E402
from src.infrastructure.api.dependencies import get_image_repo  # noqa: E402
from src.infrastructure.config import get_settings  # noqa: E402
from src.infrastructure.storage.media_storage import MediaStorage  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--dry-run", action="store_true", help="Report what would be removed")
    parser.add_argument("--grace-seconds", type=int, default=settings.orphan_grace_seconds)
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    repo = get_image_repo(settings)
    if repo.in_memory:
        # every directory would look orphaned against an empty in-memory store
        print("Refusing to sweep without a database (SUPABASE_DISABLED=1 and USE_LOCAL_DB=0)")
        return 2

    uc = SweepOrphansUseCase(
        storage=MediaStorage(settings.media_root),
        image_repo=repo,
        grace_seconds=args.grace_seconds,
    )
    report = uc.execute(dry_run=args.dry_run)
    for asset_id in report.removed_dirs:
        print(f"{'would remove' if args.dry_run else 'removed'} dir  {asset_id}")
    for name in report.removed_temp_files:
        print(f"{'would remove' if args.dry_run else 'removed'} temp {name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

import asyncio
import os
import time
from unittest.mock import patch

from image_factory import make_jpeg
from src.application.use_cases.ingest_image import IngestImageUseCase, IngestRequest
from src.application.use_cases.sweep_orphans import SweepOrphansUseCase

HOUR = 3600


def _age(path, seconds):
    old = time.time() - seconds
    os.utime(path, (old, old))


def _persisted(storage, image_repo):
    temp_path = storage.new_temp_path("jpg")
    temp_path.write_bytes(make_jpeg())
    request = IngestRequest(temp_path=temp_path, original_filename="a.jpg", couple_id="c-sweep", user_id="u")
    asset = asyncio.run(IngestImageUseCase(storage=storage, image_repo=image_repo).execute(request))
    _age(storage.asset_dir(asset.id), 2 * HOUR)
    return asset


def test_sweep_removes_only_old_orphans(storage, image_repo):
    asset = _persisted(storage, image_repo)

    old_orphan = storage.asset_dir("11111111-aaaa-4bbb-8ccc-000000000001")
    old_orphan.mkdir()
    (old_orphan / "original.jpg").write_bytes(b"partial")
    _age(old_orphan, 2 * HOUR)

    fresh_orphan = storage.asset_dir("11111111-aaaa-4bbb-8ccc-000000000002")
    fresh_orphan.mkdir()

    stale_temp = storage.new_temp_path("jpg")
    stale_temp.write_bytes(b"abandoned")
    _age(stale_temp, 2 * HOUR)
    fresh_temp = storage.new_temp_path("png")
    fresh_temp.write_bytes(b"uploading")

    report = SweepOrphansUseCase(storage, image_repo, grace_seconds=HOUR).execute()

    assert report.removed_dirs == [old_orphan.name]
    assert report.skipped_recent == [fresh_orphan.name]
    assert report.removed_temp_files == [stale_temp.name]
    assert not old_orphan.exists()
    assert fresh_orphan.exists()
    assert not stale_temp.exists()
    assert fresh_temp.exists()
    assert all(storage.exists(p) for p in asset.paths)


def test_dry_run_changes_nothing(storage, image_repo):
    orphan = storage.asset_dir("22222222-aaaa-4bbb-8ccc-000000000001")
    orphan.mkdir()
    _age(orphan, 2 * HOUR)

    report = SweepOrphansUseCase(storage, image_repo, grace_seconds=HOUR).execute(dry_run=True)

    assert report.removed_dirs == [orphan.name]
    assert orphan.exists()


def test_entries_vanishing_mid_sweep_are_skipped(storage, image_repo):
    gone_dir = "33333333-aaaa-4bbb-8ccc-000000000001"
    gone_temp = storage.temp_dir / "gone.jpg"
    survivor = storage.asset_dir("33333333-aaaa-4bbb-8ccc-000000000002")
    survivor.mkdir()
    _age(survivor, 2 * HOUR)

    with patch.object(storage, "list_asset_ids", return_value=[gone_dir, survivor.name]), \
            patch.object(storage, "list_temp_files", return_value=[gone_temp]):
        report = SweepOrphansUseCase(storage, image_repo, grace_seconds=HOUR).execute()

    assert report.removed_dirs == [survivor.name]
    assert report.removed_temp_files == []
    assert not survivor.exists()

import asyncio
import logging
from unittest.mock import patch

import pytest

from image_factory import make_jpeg
from src.application.use_cases.delete_image import DeleteImageUseCase
from src.application.use_cases.ingest_image import IngestImageUseCase, IngestRequest


@pytest.fixture()
def asset(storage, image_repo):
    temp_path = storage.new_temp_path("jpg")
    temp_path.write_bytes(make_jpeg(640, 480))
    request = IngestRequest(temp_path=temp_path, original_filename="a.jpg", couple_id="c1", user_id="u1")
    return asyncio.run(IngestImageUseCase(storage=storage, image_repo=image_repo).execute(request))


def test_delete_removes_files_directory_and_row(storage, image_repo, asset):
    assert DeleteImageUseCase(storage, image_repo).execute("c1", asset.id) is True
    for rel_path in asset.paths:
        assert not storage.exists(rel_path)
    assert not storage.asset_dir(asset.id).exists()
    assert image_repo.get(asset.id) is None


def test_delete_from_other_couple_is_refused(storage, image_repo, asset):
    with pytest.raises(ValueError, match="Image not found"):
        DeleteImageUseCase(storage, image_repo).execute("someone-else", asset.id)
    assert all(storage.exists(p) for p in asset.paths)
    assert image_repo.get(asset.id) is not None


def test_delete_unknown_image(storage, image_repo):
    with pytest.raises(ValueError):
        DeleteImageUseCase(storage, image_repo).execute("c1", "missing")


def test_file_failure_still_drops_row(storage, image_repo, asset, caplog):
    with patch.object(storage, "delete_files", return_value=[asset.thumb_small_path]):
        with caplog.at_level(logging.ERROR):
            assert DeleteImageUseCase(storage, image_repo).execute("c1", asset.id) is True
    assert image_repo.get(asset.id) is None
    # leftovers become orphans for the sweep, never a dangling row
    assert storage.asset_dir(asset.id).exists()
    assert "could not be deleted" in caplog.text


def test_row_failure_after_files_is_logged_and_raised(storage, image_repo, asset, caplog):
    with patch.object(image_repo, "delete", side_effect=RuntimeError("DB delete image failed")):
        with caplog.at_level(logging.ERROR):
            with pytest.raises(RuntimeError):
                DeleteImageUseCase(storage, image_repo).execute("c1", asset.id)
    assert not storage.asset_dir(asset.id).exists()
    assert "row deletion failed" in caplog.text

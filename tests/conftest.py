import os
import sys
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("USE_LOCAL_DB", "0")
os.environ.setdefault("MEDIA_ROOT", tempfile.mkdtemp(prefix="couple-media-test-"))


@pytest.fixture(scope="session")
def client() -> TestClient:
    # lazy import after env configured
    from src.main import create_app

    app = create_app()
    return TestClient(app)


@pytest.fixture()
def auth_header() -> dict[str, str]:
    # any token is accepted in disabled mode
    return {"Authorization": "Bearer test-token"}


@pytest.fixture()
def storage(tmp_path):
    from src.infrastructure.storage.media_storage import MediaStorage

    return MediaStorage(tmp_path / "media")


@pytest.fixture()
def image_repo():
    from src.infrastructure.database.repositories import image_repository

    repo = image_repository.ImageRepository(None)
    before = set(image_repository._MEM_IMAGES)
    yield repo
    for key in set(image_repository._MEM_IMAGES) - before:
        image_repository._MEM_IMAGES.pop(key, None)

# Blob store + photo upload pipeline tests
# Dependent files: app/services/blob_storage.py

from datetime import datetime, timezone

import pytest

from app.services.blob_storage import (
    BlobStorageError, BlobStore, PhotoValidationError,
    delete_photo, parse_filename, upload_photo, upload_requirements,
)
from db.models import get_photo

JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


@pytest.fixture
def store(tmp_path):
    return BlobStore(root=tmp_path)


# ── Filename parsing ──────────────────────────────────────────────────────────

def test_parse_full_filename():
    parsed = parse_filename("landscape_nature-Mountain_Sunset-07152023.jpg")
    assert parsed.tags == ["landscape", "nature"]
    assert parsed.title == "Mountain Sunset"
    assert parsed.date_string == "07152023"
    assert parsed.parsed_date == datetime(2023, 7, 15, tzinfo=timezone.utc)


def test_parse_invalid_date():
    assert parse_filename("tag-Title-02312023.png").parsed_date is None
    assert parse_filename("tag-Title-notadate.png").parsed_date is None


def test_parse_plain_filename():
    parsed = parse_filename("holiday_snap.jpg")
    assert parsed.title == "holiday snap"
    assert parsed.tags == []
    assert parsed.parsed_date is None


# ── Blob store ────────────────────────────────────────────────────────────────

def test_put_list_delete(store, tmp_path):
    url = store.put("a.jpg", JPEG)
    assert url == "/blobs/gallery/a.jpg"
    assert (tmp_path / "gallery" / "a.jpg").read_bytes() == JPEG
    assert store.list() == ["gallery/a.jpg"]

    store.delete("a.jpg")
    store.delete("a.jpg")  # deleting twice is fine
    assert store.list() == []


@pytest.mark.parametrize("name", ["../escape.jpg", "sub/dir.jpg", ".hidden"])
def test_rejects_path_names(store, name):
    with pytest.raises(BlobStorageError):
        store.put(name, JPEG)


# ── Upload pipeline ───────────────────────────────────────────────────────────

def test_upload_derives_metadata_from_filename(store, conn):
    photo = upload_photo(
        "landscape_nature-Mountain_Sunset-07152023.jpg", "image/jpeg", JPEG,
        {"tags": ["nature", "travel"], "camera": "X100V"},
        store=store,
    )
    assert photo["alt"] == "Mountain Sunset"
    assert photo["tags"] == ["landscape", "nature", "travel"]
    assert photo["createdAt"].startswith("2023-07-15")
    assert photo["metadata"]["camera"] == "X100V"
    assert photo["metadata"]["size"] == len(JPEG)
    assert photo["blobUrl"] == f"/blobs/gallery/{photo['filename']}"
    assert store.list() == [f"gallery/{photo['filename']}"]

    stored = get_photo(conn, photo["_id"])
    assert stored["originalName"] == "landscape_nature-Mountain_Sunset-07152023.jpg"


def test_upload_explicit_alt_wins(store):
    photo = upload_photo("tag-Some_Title-01012020.jpg", "image/jpeg", JPEG,
                         {"alt": "Custom alt"}, store=store)
    assert photo["alt"] == "Custom alt"
    assert photo["description"] == "Some Title"


def test_upload_validation(store):
    with pytest.raises(PhotoValidationError, match="not allowed"):
        upload_photo("doc.pdf", "application/pdf", JPEG, {}, store=store)
    with pytest.raises(PhotoValidationError, match="exceeds 1MB"):
        upload_photo("big.jpg", "image/jpeg", b"x" * (1024 * 1024 + 1), {},
                     store=store, config={"max_file_size": 1024 * 1024})
    with pytest.raises(PhotoValidationError, match="No file provided"):
        upload_photo("", "image/jpeg", JPEG, {}, store=store)
    assert store.list() == []


def test_delete_removes_blob_and_row(store, conn):
    photo = upload_photo("a-b-01012020.jpg", "image/jpeg", JPEG, {}, store=store)
    assert delete_photo(photo["_id"], store=store) is True
    assert store.list() == []
    assert get_photo(conn, photo["_id"]) is None
    assert delete_photo(photo["_id"], store=store) is False


def test_upload_requirements():
    reqs = upload_requirements({"max_file_size": 10 * 1024 * 1024, "allowed_types": ["image/png"]})
    assert reqs["maxSize"] == "10MB"
    assert reqs["allowedTypes"] == ["image/png"]
    assert reqs["requiredFields"] == ["file"]

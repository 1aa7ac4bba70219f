import pytest

from contactbook.core import Settings
from contactbook.storage import (
    InMemoryStorage,
    LocalStorage,
    StorageError,
    build_storage,
)


def test_local_storage_roundtrip(tmp_path):
    storage = LocalStorage(str(tmp_path), "http://localhost:8000/")
    path = storage.put(b"data", "png")

    assert path.startswith("contacts/") and path.endswith(".png")
    assert (tmp_path / path).read_bytes() == b"data"
    assert storage.url_for(path) == f"http://localhost:8000/storage/{path}"

    storage.delete(path)
    assert not (tmp_path / path).exists()
    # deleting twice is not an error
    storage.delete(path)


def test_every_upload_gets_its_own_path(tmp_path):
    storage = LocalStorage(str(tmp_path), "http://localhost")
    assert storage.put(b"a", "jpg") != storage.put(b"a", "jpg")


def test_rejects_unknown_extension(tmp_path):
    storage = LocalStorage(str(tmp_path), "http://localhost")
    with pytest.raises(StorageError):
        storage.put(b"a", "exe")


def test_local_storage_refuses_paths_outside_root(tmp_path):
    storage = LocalStorage(str(tmp_path / "root"), "http://localhost")
    with pytest.raises(StorageError):
        storage.delete("../outside.png")


def test_in_memory_storage_records_deletes():
    storage = InMemoryStorage(base_url="http://cdn.example.com")
    path = storage.put(b"x", "gif")
    storage.delete(path)
    storage.delete("contacts/missing.gif")
    assert storage.blobs == {}
    assert storage.deleted == [path, "contacts/missing.gif"]
    assert storage.url_for(path) == f"http://cdn.example.com/{path}"


def test_build_storage_selects_backend(tmp_path):
    local = build_storage(Settings(STORAGE_BACKEND="local", STORAGE_ROOT=str(tmp_path)))
    assert isinstance(local, LocalStorage)
    assert isinstance(build_storage(Settings(STORAGE_BACKEND="memory")), InMemoryStorage)
    with pytest.raises(RuntimeError):
        build_storage(Settings(STORAGE_BACKEND="cloudinary", CLOUDINARY_URL=None))

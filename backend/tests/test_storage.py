import io

import pytest

from collabtodo.storage import factory
from collabtodo.storage.local import LocalStorage
from collabtodo.storage.s3 import S3Storage


def test_local_storage_round_trip(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    key = storage.save(io.BytesIO(b"hello"), "my avatar.png")
    assert key.endswith("_my_avatar.png")
    with storage.open(key) as f:
        assert f.read() == b"hello"
    assert storage.get_file_url(key) is None
    assert storage.delete(key) is True
    assert storage.delete(key) is False


def test_local_storage_keys_stay_inside_root(tmp_path):
    root = tmp_path / "media"
    storage = LocalStorage(root=str(root))
    (tmp_path / "secret.txt").write_text("nope")
    with pytest.raises(FileNotFoundError):
        storage.open("../secret.txt")


class FakeS3:
    def __init__(self):
        self.objects = {}

    def put_object(self, Bucket, Key, Body, ContentType):
        self.objects[(Bucket, Key)] = (Body, ContentType)

    def get_object(self, Bucket, Key):
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)][0])}

    def delete_object(self, Bucket, Key):
        self.objects.pop((Bucket, Key), None)

    def generate_presigned_url(self, op, Params, ExpiresIn):
        return f"https://s3.example.com/{Params['Bucket']}/{Params['Key']}?expires={ExpiresIn}"


@pytest.fixture
def fake_s3(monkeypatch):
    fake = FakeS3()
    monkeypatch.setenv("S3_BUCKET_NAME", "pictures")
    monkeypatch.setattr("collabtodo.storage.s3.boto3.client", lambda *args, **kwargs: fake)
    return fake


def test_s3_storage_uses_prefixed_keys(fake_s3):
    storage = S3Storage()
    key = storage.save(io.BytesIO(b"img"), "avatar_1_abc.png")
    assert key == "avatar_1_abc.png"
    assert fake_s3.objects[("pictures", "avatars/avatar_1_abc.png")] == (b"img", "image/png")
    assert storage.open(key).read() == b"img"
    assert storage.get_file_url(key) == "https://s3.example.com/pictures/avatars/avatar_1_abc.png?expires=900"
    storage.delete(key)
    assert fake_s3.objects == {}


def test_s3_storage_requires_bucket(monkeypatch):
    monkeypatch.delenv("S3_BUCKET_NAME", raising=False)
    with pytest.raises(RuntimeError):
        S3Storage()


def test_factory_picks_s3_when_bucket_configured(fake_s3):
    factory.get_storage.cache_clear()
    try:
        assert isinstance(factory.get_storage(), S3Storage)
    finally:
        factory.get_storage.cache_clear()


def test_files_route_redirects_for_s3(client, fake_s3):
    from collabtodo.main import app

    storage = S3Storage()
    app.dependency_overrides[factory.get_storage] = lambda: storage
    try:
        resp = client.get("/api/files/avatar_1_abc.png", follow_redirects=False)
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 307
    assert resp.headers["location"].startswith("https://s3.example.com/pictures/avatars/avatar_1_abc.png")


def test_s3_object_keys_are_sanitized(fake_s3):
    storage = S3Storage()
    key = storage.save(io.BytesIO(b"img"), "../other/my avatar.png")
    assert key == "my_avatar.png"
    assert ("pictures", "avatars/my_avatar.png") in fake_s3.objects
    assert storage.get_file_url("../../etc/passwd").startswith("https://s3.example.com/pictures/avatars/passwd")

import base64

from collabtodo import crud
from collabtodo.auth import create_access_token
from collabtodo.avatars import MAX_PICTURE_BYTES
from collabtodo.models import User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _png_data_uri(payload=PNG_BYTES):
    return "data:image/png;base64," + base64.b64encode(payload).decode()


def test_register_and_login(client):
    resp = client.post(
        "/api/users/register",
        json={"email": "Dana@Example.com", "password": "Abcdef1!", "name": "Dana"},
    )
    assert resp.status_code == 201
    assert resp.json() == {"message": "User registered successfully"}

    resp = client.post("/api/users/login", json={"email": "dana@example.com", "password": "Abcdef1!"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["token"]
    assert body["user"]["email"] == "dana@example.com"
    assert body["user"]["name"] == "Dana"
    assert body["user"]["picture"] == "https://ui-avatars.com/api/?background=random&name=Dana"
    assert body["user"]["pictureSource"] == "default"
    assert body["user"]["lastLoginAt"] is not None
    assert "passwordHash" not in body["user"]


def test_duplicate_email_rejected(client, alice):
    resp = client.post(
        "/api/users/register",
        json={"email": "alice@example.com", "password": "Abcdef1!", "name": "Other Alice"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Email already registered"


def test_weak_password_lists_every_problem(client):
    resp = client.post("/api/users/register", json={"email": "weak@example.com", "password": "abc", "name": "Weak"})
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail.startswith("Password requirements not met")
    assert "8 characters" in detail
    assert "uppercase" in detail
    assert "number" in detail
    assert "special character" in detail


def test_register_validation(client):
    resp = client.post("/api/users/register", json={"email": "x@example.com", "password": "Abcdef1!"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "All fields are required"

    resp = client.post("/api/users/register", json={"email": "not-an-email", "password": "Abcdef1!", "name": "X"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid email format"


def test_password_is_never_stored_in_plain(db, alice):
    user = db.query(User).filter(User.email == "alice@example.com").one()
    assert user.password_hash
    assert "Abcdef1!" not in user.password_hash


def test_login_failures_look_identical(client, alice):
    wrong_password = client.post("/api/users/login", json={"email": "alice@example.com", "password": "Wrong123!"})
    unknown_email = client.post("/api/users/login", json={"email": "nobody@example.com", "password": "Abcdef1!"})
    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json()


def test_me_requires_valid_token(client, alice):
    resp = client.get("/api/users/me", headers=alice.headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == alice.id

    assert client.get("/api/users/me").status_code == 401
    assert client.get("/api/users/me", headers={"Authorization": "Bearer junk"}).status_code == 401
    assert client.get("/api/users/me", headers={"Authorization": "Basic abc"}).status_code == 401


def test_token_for_missing_user_rejected(client, alice):
    token = create_access_token(alice.id + 1000)
    resp = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


def test_token_authenticates_its_own_user_only(client, alice, bob):
    assert client.get("/api/users/me", headers=alice.headers).json()["user"]["email"] == "alice@example.com"
    assert client.get("/api/users/me", headers=bob.headers).json()["user"]["email"] == "bob@example.com"


def test_update_name(client, alice):
    resp = client.post("/api/users/update-name", json={"name": "  Alice Liddell  "}, headers=alice.headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["name"] == "Alice Liddell"

    resp = client.post("/api/users/update-name", json={"name": "   "}, headers=alice.headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Name is required"


def test_upload_and_serve_profile_picture(client, alice):
    resp = client.post(
        "/api/users/update-profile-picture",
        json={"pictureUrl": _png_data_uri()},
        headers=alice.headers,
    )
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["pictureSource"] == "upload"
    assert user["isGooglePicture"] is False
    assert user["picture"].startswith("/api/files/")

    served = client.get(user["picture"])
    assert served.status_code == 200
    assert served.content == PNG_BYTES
    assert served.headers["content-type"] == "image/png"


def test_replacing_picture_removes_previous_upload(client, alice):
    first = client.post(
        "/api/users/update-profile-picture", json={"pictureUrl": _png_data_uri()}, headers=alice.headers
    ).json()["user"]["picture"]
    second = client.post(
        "/api/users/update-profile-picture", json={"pictureUrl": _png_data_uri(PNG_BYTES + b"1")}, headers=alice.headers
    ).json()["user"]["picture"]
    assert first != second
    assert client.get(first).status_code == 404
    assert client.get(second).status_code == 200


def test_profile_picture_rejects_bad_format(client, alice):
    for bad in ("https://example.com/cat.png", "data:text/plain;base64,aGVsbG8=", "data:image/png;base64,%%%"):
        resp = client.post("/api/users/update-profile-picture", json={"pictureUrl": bad}, headers=alice.headers)
        assert resp.status_code == 400, bad
        assert resp.json()["detail"] == "Invalid image format"


def test_profile_picture_rejects_oversized_payload(client, alice):
    big = _png_data_uri(b"\x00" * (MAX_PICTURE_BYTES + 1))
    resp = client.post("/api/users/update-profile-picture", json={"pictureUrl": big}, headers=alice.headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "File size should be less than 5MB"


def test_reset_profile_picture_uses_current_name(client, alice):
    client.post("/api/users/update-profile-picture", json={"pictureUrl": _png_data_uri()}, headers=alice.headers)
    client.post("/api/users/update-name", json={"name": "Queen Alice"}, headers=alice.headers)

    resp = client.post("/api/users/reset-profile-picture", headers=alice.headers)
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["picture"] == "https://ui-avatars.com/api/?background=random&name=Queen%20Alice"
    assert user["pictureSource"] == "default"


def test_list_users_minimal_projection(client, alice, bob):
    resp = client.get("/api/users", headers=alice.headers)
    assert resp.status_code == 200
    users = resp.json()
    assert {u["id"] for u in users} == {alice.id, bob.id}
    for u in users:
        assert set(u) == {"id", "name", "avatar"}

    assert client.get("/api/users").status_code == 401


def test_unexpected_error_is_generic_500(client, alice, monkeypatch):
    from fastapi.testclient import TestClient
    from collabtodo.main import app

    def explode(db):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(crud, "list_users", explode)
    resp = TestClient(app, raise_server_exceptions=False).get("/api/users", headers=alice.headers)
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error"}


def test_register_with_wrong_types_answers_400(client):
    resp = client.post("/api/users/register", json={"email": 5, "password": "Abcdef1!", "name": "Five"})
    assert resp.status_code == 400
    assert "email" in resp.json()["detail"]

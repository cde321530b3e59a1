import base64
import hashlib

import pytest
from conftest import run

from app.core.exceptions import BadRequestError
from app.services.key_service import calculate_fingerprint

RAW_KEY = b"public-key-bytes-for-tests"
PUBLIC_KEY = base64.b64encode(RAW_KEY).decode()
FINGERPRINT = hashlib.sha256(RAW_KEY).hexdigest()


def test_fingerprint_is_sha256_of_decoded_key():
    assert calculate_fingerprint(PUBLIC_KEY) == FINGERPRINT


def test_fingerprint_rejects_bad_base64():
    with pytest.raises(BadRequestError):
        calculate_fingerprint("not base64 at all!")


def test_register_and_fetch_key(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")

    response = client.post("/api/chat/keys/register", headers=alice["headers"], json={"public_key": PUBLIC_KEY})
    assert response.status_code == 201
    assert response.json()["data"]["fingerprint"] == FINGERPRINT

    fetched = client.get(f"/api/chat/keys/{alice['id']}", headers=bob["headers"])
    assert fetched.status_code == 200
    assert fetched.json()["data"]["public_key"] == PUBLIC_KEY

    missing = client.get(f"/api/chat/keys/{bob['id']}", headers=alice["headers"])
    assert missing.status_code == 404
    assert missing.json()["code"] == "KEY_NOT_FOUND"


def test_short_key_rejected(client, make_user):
    alice = make_user("alice")
    response = client.post("/api/chat/keys/register", headers=alice["headers"], json={"public_key": "abc"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_KEY"


def test_verify_fingerprint(client, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    client.post("/api/chat/keys/register", headers=alice["headers"], json={"public_key": PUBLIC_KEY})

    ok = client.post("/api/chat/keys/verify", headers=bob["headers"], json={"user_id": alice["id"], "fingerprint": FINGERPRINT.upper()})
    assert ok.json()["is_valid"] is True

    bad = client.post("/api/chat/keys/verify", headers=bob["headers"], json={"user_id": alice["id"], "fingerprint": "00" * 32})
    assert bad.json()["is_valid"] is False


def test_rotate_replaces_key(client, make_user, db):
    alice = make_user("alice")
    client.post("/api/chat/keys/register", headers=alice["headers"], json={"public_key": PUBLIC_KEY})

    new_key = base64.b64encode(b"rotated-key-material").decode()
    response = client.put("/api/chat/keys/rotate", headers=alice["headers"], json={"public_key": new_key})
    assert response.status_code == 200
    assert response.json()["data"]["public_key"] == new_key
    assert run(db.user_keys.count_documents({})) == 1

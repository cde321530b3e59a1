import asyncio
import os
import tempfile

os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="blaze-uploads-"))
os.environ.pop("SMTP_HOST", None)
os.environ.pop("DEFAULT_ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from app.db import mongo
from app.db.indexes import create_indexes

mongo._database = AsyncMongoMockClient()["blaze_test"]
asyncio.run(create_indexes())

from app.main import app
from app.core.security import create_access_token, hash_password, new_session_id
from app.models.user import new_user_document
from utils.constants import USER_TYPE_ADMIN, USER_TYPE_USER, VERIFICATION_ACTIVE
from utils.time_utils import utc_now

COLLECTIONS = (
    "users",
    "connections",
    "notifications",
    "user_preferences",
    "conversations",
    "messages",
    "user_keys",
)

PASSWORD = "secret123"


def run(coro):
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def db():
    database = mongo.get_database()
    for name in COLLECTIONS:
        run(database[name].delete_many({}))
    return database


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    """
    Inserts a verified user with an open session.

    Returns a dict with the document, its hex id, the bearer token,
    session id and ready-made request headers.
    """
    counter = {"n": 0}

    def _make(username=None, user_type=USER_TYPE_USER, **fields):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        doc = new_user_document(
            full_name=fields.pop("full_name", username.title()),
            username=username,
            email=fields.pop("email", f"{username}@mail.com"),
            password_hash=hash_password(fields.pop("password", PASSWORD)),
            now=utc_now(),
            user_type=user_type,
            verification_status=fields.pop("verification_status", VERIFICATION_ACTIVE),
        )
        session_id = new_session_id()
        doc["session_id"] = session_id
        doc.update(fields)
        doc["_id"] = run(db.users.insert_one(doc)).inserted_id

        token = create_access_token(
            str(doc["_id"]),
            session_id,
            user_type=user_type if user_type == USER_TYPE_ADMIN else None,
        )
        return {
            "doc": doc,
            "id": str(doc["_id"]),
            "token": token,
            "session_id": session_id,
            "headers": {"Authorization": f"Bearer {token}", "X-Session-ID": session_id},
        }

    return _make

import os
import tempfile

os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="bokt-uploads-")
os.environ["DATABASE_TRANSACTIONS"] = "false"

from typing import Iterable

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from main import app
from schemas import TalentProfile, User
from security import create_access_token, hash_password
from storage import StorageError, StoredObject, get_storage


class FakeStorage:
    """In-memory storage; uploads whose bytes are listed in `fail_on` raise."""

    base = "https://cdn.test/storage/v1/object/public/photos/"

    def __init__(self, fail_on: Iterable[bytes] = (), fail_delete: bool = False):
        self.objects = {}
        self.fail_on = set(fail_on)
        self.fail_delete = fail_delete
        self.deleted = []

    def public_url(self, path):
        return self.base + path

    def path_from_url(self, url):
        if url and url.startswith(self.base):
            return url[len(self.base):]
        return None

    async def upload(self, data, filename, folder="models", content_type="application/octet-stream"):
        if data in self.fail_on:
            raise StorageError("simulated upload failure")
        path = f"{folder}/{filename}"
        self.objects[path] = data
        return StoredObject(url=self.public_url(path), path=path)

    async def delete(self, paths):
        if self.fail_delete:
            raise StorageError("simulated delete failure")
        for p in paths:
            self.objects.pop(p, None)
            self.deleted.append(p)
        return True

    async def close(self):
        pass


@pytest.fixture
def db():
    handle = database.init_db(client=mongomock.MongoClient(), name="bokt_test", transactions=False)
    yield handle
    database.close_db()


@pytest.fixture
def storage():
    fake = FakeStorage()
    app.dependency_overrides[get_storage] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_storage, None)


@pytest.fixture
def client(db, storage):
    return TestClient(app)


def make_account(role="BRAND", email=None, password="s3cret-pass", name="Test User"):
    email = email or f"{role.lower()}-{os.urandom(3).hex()}@example.com"
    uid = database.create_document("user", User(name=name, email=email, role=role,
                                                 password_hash=hash_password(password)))
    return uid


def auth_headers(uid, role="BRAND"):
    return {"Authorization": f"Bearer {create_access_token({'sub': uid, 'role': role})}"}


@pytest.fixture
def admin_headers(db):
    return auth_headers(make_account("ADMIN", email="admin@bokt.dev"), "ADMIN")


def make_profile(approved=True, available=True, photos=0, **overrides):
    uid = make_account("MODEL")
    fields = dict(
        user_id=uid,
        display_name="Amira",
        location="Cairo",
        instagram_handle="amira.h",
        gender="FEMALE",
        height_cm=175,
        bust_cm=84,
        waist_cm=60,
        age=24,
        shirt_size="S",
        pant_size="28",
        shoes_size="39",
        modeling_experience="2 years",
        categories=["FASHION"],
        approved=approved,
        available=available,
    )
    fields.update(overrides)
    pid = database.create_document("talentprofile", TalentProfile(**fields))
    for i in range(photos):
        database.create_document("photo", {
            "profile_id": pid,
            "url": f"{FakeStorage.base}models/{pid}_{i}.jpg",
            "path": f"models/{pid}_{i}.jpg",
        })
    return pid


def application_payload(**overrides):
    data = {
        "name": "Amira Hassan",
        "email": "amira@example.com",
        "phone": "+20 100 123 4567",
        "location": "Cairo",
        "instagramHandle": "@amira.h",
        "gender": "FEMALE",
        "heightCm": 175,
        "shirtSize": "S",
        "pantSize": "28",
        "shoesSize": "39",
        "bustCm": 84,
        "waistCm": 60,
        "age": 24,
        "categories": ["FASHION", "COMMERCIAL"],
        "modelingExperience": "Two years of catalogue work",
        "bio": "Based in Cairo.",
        "termsAccepted": True,
        "photoUrls": [f"{FakeStorage.base}models/upload_{i}.jpg" for i in range(5)],
    }
    data.update(overrides)
    return data

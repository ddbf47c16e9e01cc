from __future__ import annotations

import contextlib
import sys
from pathlib import Path

import pytest
from google.cloud import datastore

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from clients import CourseStore, ImageHost, Services
from config import Settings
from main import create_app
from utils import ConflictError, InvalidCredentials, generate_token

SECRET = "test-secret"


class FakeQuery:
    def __init__(self, client, kind):
        self.client = client
        self.kind = kind

    def fetch(self):
        self.client.check()
        return [e for e in self.client.entities.values() if e.key.kind == self.kind]


class FakeDatastoreClient:
    """In-memory stand-in for ``datastore.Client`` covering what CourseStore uses."""

    project = "test-project"

    def __init__(self):
        self.entities = {}
        self.error = None
        self._next_id = 1

    def check(self):
        if self.error is not None:
            raise self.error

    def key(self, *path):
        return datastore.Key(*path, project=self.project)

    def allocate_ids(self, incomplete_key, num_ids):
        self.check()
        keys = []
        for _ in range(num_ids):
            keys.append(incomplete_key.completed_key(self._next_id))
            self._next_id += 1
        return keys

    def transaction(self):
        return contextlib.nullcontext()

    def query(self, kind):
        return FakeQuery(self, kind)

    def get(self, key):
        self.check()
        stored = self.entities.get(key.flat_path)
        if stored is None:
            return None
        entity = datastore.Entity(key=stored.key)
        entity.update(stored)
        return entity

    def put_multi(self, entities):
        self.check()
        for entity in entities:
            copy = datastore.Entity(key=entity.key)
            copy.update(entity)
            self.entities[entity.key.flat_path] = copy

    def delete(self, key):
        self.check()
        self.entities.pop(key.flat_path, None)

    def delete_multi(self, keys):
        for key in keys:
            self.delete(key)

    def kind(self, kind):
        return [e for e in self.entities.values() if e.key.kind == kind]


class FakeIdentityProvider:
    def __init__(self):
        self.users = {}
        self.error = None

    def register(self, username, password):
        if self.error is not None:
            raise self.error
        if username in self.users:
            raise ConflictError(username)
        self.users[username] = password
        return {"email": username}

    def login(self, username, password):
        if self.error is not None:
            raise self.error
        if self.users.get(username) != password:
            raise InvalidCredentials()
        return generate_token({"sub": username}, SECRET)


class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name

    def upload_from_file(self, stream, content_type=None):
        if self.bucket.error is not None:
            raise self.bucket.error
        self.bucket.uploads[self.name] = (stream.read(), content_type)

    @property
    def public_url(self):
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}"


class FakeBucket:
    def __init__(self, name="test-bucket"):
        self.name = name
        self.uploads = {}
        self.error = None

    def blob(self, name):
        return FakeBlob(self, name)


@pytest.fixture()
def settings() -> Settings:
    return Settings(jwt_secret=SECRET, bucket_name="test-bucket", log_level="DEBUG")


@pytest.fixture()
def datastore_client() -> FakeDatastoreClient:
    return FakeDatastoreClient()


@pytest.fixture()
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def bucket() -> FakeBucket:
    return FakeBucket()


@pytest.fixture()
def services(datastore_client, identity, bucket) -> Services:
    return Services(
        courses=CourseStore(datastore_client),
        identity=identity,
        images=ImageHost(bucket, "courses"),
    )


@pytest.fixture()
def app(settings, services):
    return create_app(settings, services)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def token() -> str:
    return generate_token({"sub": "user-1"}, SECRET)


@pytest.fixture()
def auth_headers(token) -> dict:
    return {"Authorization": f"Bearer {token}"}


def course_payload(**overrides) -> dict:
    payload = {
        "name": "Algorithms",
        "code": "CS201",
        "description": "Design and analysis of algorithms",
        "credit": 4,
        "image": "https://storage.googleapis.com/test-bucket/courses/cs201.png",
    }
    payload.update(overrides)
    return payload

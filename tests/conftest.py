import io

import mongomock
import pytest
from fastapi.testclient import TestClient
from PIL import Image

import main
from database import get_db
from repositories import ReviewRepository, StoreRepository, UserRepository
from stores import StoreService, store_fields
from uploads import PhotoIntake


@pytest.fixture
def db():
    return mongomock.MongoClient()["store_directory_test"]


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def store_service(db):
    return StoreService(StoreRepository(db), UserRepository(db), ReviewRepository(db))


@pytest.fixture
def author(db):
    doc = {"email": "author@example.com", "name": "Author", "password_hash": "x", "hearts": []}
    doc["_id"] = db["user"].insert_one(doc).inserted_id
    return doc


@pytest.fixture
def make_fields():
    def _make(name="Coffee Shop", tags=None, description="Good coffee", address="1 Main St"):
        return store_fields(name, description, tags or [], address, -73.98, 40.75)
    return _make


@pytest.fixture
def image_bytes():
    def _make(width=600, height=400, fmt="PNG"):
        buf = io.BytesIO()
        Image.new("RGB", (width, height), (200, 30, 90)).save(buf, format=fmt)
        return buf.getvalue()
    return _make


@pytest.fixture
def client(db, upload_dir):
    main.app.dependency_overrides[get_db] = lambda: db
    main.app.dependency_overrides[main.get_photo_intake] = lambda: PhotoIntake(str(upload_dir))
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    def _register(name="Jane Doe", email="jane@example.com", password="secret"):
        resp = client.post(
            "/auth/register",
            data={"name": name, "email": email, "password": password, "password_confirm": password},
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]
    return _register

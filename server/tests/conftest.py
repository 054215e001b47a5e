"""Shared fixtures: in-memory store, HTTP client and catalog builders."""

from datetime import datetime, timezone
from typing import Callable, Dict

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from tunevault.db import connection
from tunevault.db.init_collections import create_collections_and_indexes
from tunevault.http_api import rate_limiter
from tunevault.http_api.auth import create_access_token
from tunevault.main import app


@pytest.fixture
def db(monkeypatch):
    database = mongomock.MongoClient()["tunevault_test"]
    create_collections_and_indexes(database)
    monkeypatch.setattr(connection, "_database", database)
    monkeypatch.setattr(connection, "MONGO_TRANSACTIONS", False)
    return database


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limiter.rate_limit_data.clear()
    yield
    rate_limiter.rate_limit_data.clear()


@pytest.fixture
def client(db) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user(db) -> Callable[..., Dict]:
    def _make(name: str = "listener", role: str = "user", is_active: bool = True) -> Dict:
        now = datetime.now(timezone.utc).isoformat()
        user = {
            "id": str(ObjectId()),
            "name": name,
            "email": f"{name}-{ObjectId()}@example.com",
            "password_hash": "not-used",
            "role": role,
            "avatar_url": "",
            "is_active": is_active,
            "created_at": now,
            "updated_at": now,
            "last_login": None,
        }
        db.users.insert_one(dict(user))
        user["headers"] = {"Authorization": f"Bearer {create_access_token(user['id'])}"}
        return user

    return _make


@pytest.fixture
def admin(make_user) -> Dict:
    return make_user("curator", role="admin")


@pytest.fixture
def listener(make_user) -> Dict:
    return make_user("listener")


@pytest.fixture
def catalog(client, admin):
    """Builders that create catalog entities through the admin API"""

    class Catalog:
        def genre(self, name: str = "Lo-fi") -> Dict:
            response = client.post("/api/genres", json={"name": name}, headers=admin["headers"])
            assert response.status_code == 201, response.text
            return response.json()["data"]["genre"]

        def mood(self, name: str = "Chill") -> Dict:
            response = client.post("/api/moods", json={"name": name}, headers=admin["headers"])
            assert response.status_code == 201, response.text
            return response.json()["data"]["mood"]

        def artist(self, name: str = "Night Owls", **fields) -> Dict:
            response = client.post("/api/artists", json={"name": name, **fields}, headers=admin["headers"])
            assert response.status_code == 201, response.text
            return response.json()["data"]["artist"]

        def album(self, artist_id: str, title: str = "Rainy Windows", release_date: str = "2023-11-03", **fields) -> Dict:
            payload = {"title": title, "artist": artist_id, "release_date": release_date, **fields}
            response = client.post("/api/albums", json=payload, headers=admin["headers"])
            assert response.status_code == 201, response.text
            return response.json()["data"]["album"]

        def track(self, artist_id: str, album_id: str, title: str = "Drizzle", duration: float = 180, **fields) -> Dict:
            payload = {
                "title": title,
                "artist": artist_id,
                "album": album_id,
                "duration": duration,
                "file_url": f"https://cdn.example.com/{title}.mp3",
                **fields,
            }
            response = client.post("/api/tracks", json=payload, headers=admin["headers"])
            assert response.status_code == 201, response.text
            return response.json()["data"]["track"]

        def release(self, n_tracks: int = 2) -> Dict:
            """An artist with one album holding n tracks"""
            artist = self.artist()
            album = self.album(artist["id"])
            tracks = [self.track(artist["id"], album["id"], title=f"Track {i}") for i in range(n_tracks)]
            return {"artist": artist, "album": album, "tracks": tracks}

    return Catalog()

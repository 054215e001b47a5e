"""Tests for collection setup, schemas and the sample catalog."""

import mongomock
import pytest
from pymongo.errors import DuplicateKeyError

from tunevault.db.init_collections import (
    COLLECTIONS_CONFIG,
    JSON_SCHEMAS,
    SAMPLE_DATA_TEMPLATES,
    init_mongodb,
    list_indexes,
    validate_document,
    validate_sample_data,
)


@pytest.fixture
def fresh_db():
    return mongomock.MongoClient()["tunevault_init"]


class TestSchemas:
    def test_every_collection_has_a_schema(self) -> None:
        for name in COLLECTIONS_CONFIG:
            assert JSON_SCHEMAS[name].get("properties"), name

    def test_sample_data_is_valid(self) -> None:
        assert validate_sample_data() is True

    def test_rejects_malformed_id(self) -> None:
        genre = dict(SAMPLE_DATA_TEMPLATES["genres"][0], id="not-an-object-id")
        assert validate_document("genres", genre) is False

    def test_rejects_missing_required_field(self) -> None:
        track = {k: v for k, v in SAMPLE_DATA_TEMPLATES["tracks"][0].items() if k != "file_url"}
        assert validate_document("tracks", track) is False


class TestSampleCatalog:
    def test_references_are_consistent(self) -> None:
        tracks = {t["id"]: t for t in SAMPLE_DATA_TEMPLATES["tracks"]}
        album = SAMPLE_DATA_TEMPLATES["albums"][0]
        artist = SAMPLE_DATA_TEMPLATES["artists"][0]

        assert album["total_duration"] == sum(tracks[t]["duration"] for t in album["tracks"])
        assert artist["tracks"] == album["tracks"]
        assert artist["albums"] == [album["id"]]
        for track in tracks.values():
            assert track["artist"] == artist["id"]
            assert track["album"] == album["id"]


class TestInitMongodb:
    def test_seeds_once(self, fresh_db) -> None:
        assert init_mongodb(insert_samples=True, db=fresh_db) is True
        assert init_mongodb(insert_samples=True, db=fresh_db) is True

        for name, documents in SAMPLE_DATA_TEMPLATES.items():
            assert fresh_db[name].count_documents({}) == len(documents)

    def test_without_samples(self, fresh_db) -> None:
        init_mongodb(insert_samples=False, db=fresh_db)
        assert fresh_db.tracks.count_documents({}) == 0

    def test_drop_existing(self, fresh_db) -> None:
        init_mongodb(insert_samples=True, db=fresh_db)
        fresh_db.genres.insert_one({"id": "650000000000000000000009", "name": "Extra", "is_active": True})

        init_mongodb(drop_existing=True, insert_samples=True, db=fresh_db)

        assert fresh_db.genres.count_documents({}) == len(SAMPLE_DATA_TEMPLATES["genres"])

    def test_templates_are_not_mutated(self, fresh_db) -> None:
        init_mongodb(insert_samples=True, db=fresh_db)
        assert all("_id" not in doc for doc in SAMPLE_DATA_TEMPLATES["tracks"])

    def test_favorite_pairs_are_unique(self, db) -> None:
        favorite = {"id": "650000000000000000000501", "user": "u", "track": "t", "created_at": "2024-01-01T00:00:00+00:00"}
        db.favorites.insert_one(dict(favorite))

        with pytest.raises(DuplicateKeyError):
            db.favorites.insert_one(dict(favorite, id="650000000000000000000502"))

    def test_list_indexes(self) -> None:
        assert "user,track" in list_indexes("favorites")


class TestStoredDocuments:
    def test_api_writes_match_schemas(self, client, db, listener, catalog) -> None:
        genre = catalog.genre()
        mood = catalog.mood()
        artist = catalog.artist(genres=[genre["id"]])
        album = catalog.album(artist["id"], genres=[genre["id"]])
        track = catalog.track(artist["id"], album["id"], genres=[genre["id"]], moods=[mood["id"]])
        client.post("/api/favorites", json={"track_id": track["id"]}, headers=listener["headers"])
        client.post(f"/api/tracks/{track['id']}/play", json={"duration": 12}, headers=listener["headers"])
        client.post("/api/playlists", json={"name": "Mine", "tracks": [track["id"]]}, headers=listener["headers"])

        for name in COLLECTIONS_CONFIG:
            documents = list(db[name].find({}, {"_id": 0}))
            assert documents, name
            for document in documents:
                assert validate_document(name, document), (name, document)

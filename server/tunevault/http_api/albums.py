import logging
from datetime import date, datetime, timezone
from typing import Optional, Dict, Any, List

from bson import ObjectId
from fastapi import Request, HTTPException
from pydantic import BaseModel, Field

from ..db import relations
from ..db.connection import get_database
from ..db.populate import populate, populated
from ..db.queries import album_list_query, run_list_query, pagination_envelope
from .errors import ok, created, server_error

logger = logging.getLogger(__name__)

class AlbumCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    artist: str
    genres: List[str] = []
    release_date: date
    cover_url: str = ""
    description: str = Field("", max_length=500)

class AlbumUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    genres: Optional[List[str]] = None
    release_date: Optional[date] = None
    cover_url: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)

def get_db():
    return get_database()

def find_active_album(db, album_id: str) -> Optional[Dict]:
    album = db.albums.find_one({"id": album_id}, {"_id": 0})
    if not album or not album.get("is_active", False):
        return None
    return album

def populate_albums(db, albums: List[Dict], artist_fields=("name", "image_url"), track_fields=("title", "duration", "artist")) -> List[Dict]:
    populate(db, albums, "artist", "artists", artist_fields)
    populate(db, albums, "genres", "genres", ("name", "color"), active_only=True)
    populate(db, albums, "tracks", "tracks", track_fields, active_only=True)
    populate(db, populated(albums, "tracks"), "artist", "artists", ("name",))
    return albums

def _serialize(fields: Dict[str, Any]) -> Dict[str, Any]:
    if isinstance(fields.get("release_date"), date):
        fields["release_date"] = fields["release_date"].isoformat()
    return fields

# API Endpoints
async def get_albums_handler(request: Request, params: Dict[str, Any]):
    try:
        db = get_db()
        query = album_list_query(params)
        albums, total = run_list_query(db.albums, query)
        populate_albums(db, albums)

        return ok({
            "albums": albums,
            "pagination": pagination_envelope(query.pagination, total),
        })

    except Exception as e:
        logger.error(f"Get albums error: {e}")
        raise server_error("Server error retrieving albums")

async def get_album_handler(request: Request, album_id: str):
    try:
        db = get_db()
        album = find_active_album(db, album_id)
        if not album:
            raise HTTPException(status_code=404, detail="Album not found")

        populate_albums(
            db, [album],
            artist_fields=("name", "bio", "image_url", "followers"),
            track_fields=("title", "duration", "file_url", "cover_url", "lyrics", "play_count", "artist"),
        )
        return ok({"album": album})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get album error: {e}")
        raise server_error("Server error retrieving album")

async def get_albums_by_artist_handler(request: Request, artist_id: str):
    try:
        db = get_db()
        albums = list(
            db.albums.find({"artist": artist_id, "is_active": True}, {"_id": 0})
            .sort([("release_date", -1), ("id", -1)])
        )
        populate(db, albums, "genres", "genres", ("name", "color"), active_only=True)
        populate(db, albums, "tracks", "tracks", ("title", "duration", "artist"), active_only=True)
        populate(db, populated(albums, "tracks"), "artist", "artists", ("name",))

        return ok({"albums": albums})

    except Exception as e:
        logger.error(f"Get albums by artist error: {e}")
        raise server_error("Server error retrieving albums by artist")

async def create_album_handler(request: Request, album_data: AlbumCreate):
    try:
        db = get_db()

        if not db.artists.find_one({"id": album_data.artist, "is_active": True}):
            raise HTTPException(status_code=400, detail="Artist not found")

        now = datetime.now(timezone.utc).isoformat()
        album = {
            "id": str(ObjectId()),
            **_serialize(album_data.model_dump()),
            "tracks": [],
            "total_duration": 0,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        relations.create_album(db, album)

        album = dict(album)
        populate(db, [album], "artist", "artists", ("name",))
        populate(db, [album], "genres", "genres", ("name",), active_only=True)
        return created({"album": album})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create album error: {e}")
        raise server_error("Server error creating album")

async def update_album_handler(request: Request, album_id: str, album_data: AlbumUpdate):
    try:
        db = get_db()
        if not find_active_album(db, album_id):
            raise HTTPException(status_code=404, detail="Album not found")

        update_fields = _serialize({k: v for k, v in album_data.model_dump(exclude_unset=True).items() if v is not None})
        update_fields["updated_at"] = datetime.now(timezone.utc).isoformat()
        db.albums.update_one({"id": album_id}, {"$set": update_fields})

        album = find_active_album(db, album_id)
        populate(db, [album], "artist", "artists", ("name",))
        populate(db, [album], "genres", "genres", ("name",), active_only=True)
        return ok({"album": album})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update album error: {e}")
        raise server_error("Server error updating album")

async def delete_album_handler(request: Request, album_id: str):
    try:
        db = get_db()
        album = find_active_album(db, album_id)
        if not album:
            raise HTTPException(status_code=404, detail="Album not found")

        relations.soft_delete_album(db, album)

        return ok(message="Album deleted successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete album error: {e}")
        raise server_error("Server error deleting album")

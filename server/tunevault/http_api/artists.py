import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from bson import ObjectId
from fastapi import Request, HTTPException
from pydantic import BaseModel, Field

from ..db import relations
from ..db.connection import get_database
from ..db.populate import populate, populated
from ..db.queries import artist_list_query, run_list_query, pagination_envelope
from .errors import ok, created, server_error

logger = logging.getLogger(__name__)

class ArtistCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    bio: str = Field("", max_length=1000)
    image_url: str = ""
    genres: List[str] = []

class ArtistUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)
    image_url: Optional[str] = None
    genres: Optional[List[str]] = None
    is_verified: Optional[bool] = None
    monthly_listeners: Optional[int] = Field(None, ge=0)

def get_db():
    return get_database()

def find_active_artist(db, artist_id: str) -> Optional[Dict]:
    artist = db.artists.find_one({"id": artist_id}, {"_id": 0})
    if not artist or not artist.get("is_active", False):
        return None
    return artist

# API Endpoints
async def get_artists_handler(request: Request, params: Dict[str, Any]):
    try:
        db = get_db()
        query = artist_list_query(params)
        artists, total = run_list_query(db.artists, query)
        populate(db, artists, "genres", "genres", ("name", "color"), active_only=True)
        populate(db, artists, "albums", "albums", ("title", "cover_url", "release_date"), active_only=True)

        return ok({
            "artists": artists,
            "pagination": pagination_envelope(query.pagination, total),
        })

    except Exception as e:
        logger.error(f"Get artists error: {e}")
        raise server_error("Server error retrieving artists")

async def get_artist_handler(request: Request, artist_id: str):
    try:
        db = get_db()
        artist = find_active_artist(db, artist_id)
        if not artist:
            raise HTTPException(status_code=404, detail="Artist not found")

        populate(db, [artist], "genres", "genres", ("name", "color"), active_only=True)
        populate(db, [artist], "albums", "albums", ("title", "cover_url", "release_date", "description"), active_only=True)
        populate(db, [artist], "tracks", "tracks", ("title", "album", "duration", "play_count"), active_only=True)
        populate(db, populated([artist], "tracks"), "album", "albums", ("title",))
        populate(db, [artist], "followers", "users", ("name",), active_only=True)

        return ok({"artist": artist})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get artist error: {e}")
        raise server_error("Server error retrieving artist")

async def create_artist_handler(request: Request, artist_data: ArtistCreate):
    try:
        db = get_db()
        now = datetime.now(timezone.utc).isoformat()
        artist = {
            "id": str(ObjectId()),
            **artist_data.model_dump(),
            "albums": [],
            "tracks": [],
            "followers": [],
            "monthly_listeners": 0,
            "is_verified": False,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        db.artists.insert_one(artist)
        artist.pop("_id", None)
        logger.info(f"🎤 Artist created: {artist['id']}")

        populate(db, [artist], "genres", "genres", ("name",), active_only=True)
        return created({"artist": artist})

    except Exception as e:
        logger.error(f"Create artist error: {e}")
        raise server_error("Server error creating artist")

async def update_artist_handler(request: Request, artist_id: str, artist_data: ArtistUpdate):
    try:
        db = get_db()
        if not find_active_artist(db, artist_id):
            raise HTTPException(status_code=404, detail="Artist not found")

        update_fields = {k: v for k, v in artist_data.model_dump(exclude_unset=True).items() if v is not None}
        update_fields["updated_at"] = datetime.now(timezone.utc).isoformat()
        db.artists.update_one({"id": artist_id}, {"$set": update_fields})

        artist = find_active_artist(db, artist_id)
        populate(db, [artist], "genres", "genres", ("name",), active_only=True)
        return ok({"artist": artist})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update artist error: {e}")
        raise server_error("Server error updating artist")

async def delete_artist_handler(request: Request, artist_id: str):
    try:
        db = get_db()
        artist = find_active_artist(db, artist_id)
        if not artist:
            raise HTTPException(status_code=404, detail="Artist not found")

        relations.soft_delete_artist(db, artist)

        return ok(message="Artist deleted successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete artist error: {e}")
        raise server_error("Server error deleting artist")

async def follow_artist_handler(request: Request, user: Dict, artist_id: str):
    try:
        db = get_db()
        artist = find_active_artist(db, artist_id)
        if not artist:
            raise HTTPException(status_code=404, detail="Artist not found")

        result = db.artists.update_one(
            {"id": artist_id, "followers": {"$ne": user["id"]}},
            {"$push": {"followers": user["id"]}}
        )
        if result.modified_count == 0:
            raise HTTPException(status_code=400, detail="Already following this artist")

        return ok(message="Artist followed successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Follow artist error: {e}")
        raise server_error("Server error following artist")

async def unfollow_artist_handler(request: Request, user: Dict, artist_id: str):
    try:
        db = get_db()
        if not db.artists.find_one({"id": artist_id}):
            raise HTTPException(status_code=404, detail="Artist not found")

        db.artists.update_one({"id": artist_id}, {"$pull": {"followers": user["id"]}})

        return ok(message="Artist unfollowed successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unfollow artist error: {e}")
        raise server_error("Server error unfollowing artist")

async def get_followed_artists_handler(request: Request, user: Dict):
    try:
        db = get_db()
        artists = list(
            db.artists.find({"followers": user["id"], "is_active": True}, {"_id": 0})
            .sort([("name", 1), ("id", -1)])
        )
        populate(db, artists, "genres", "genres", ("name", "color"), active_only=True)

        return ok({"artists": artists})

    except Exception as e:
        logger.error(f"Get followed artists error: {e}")
        raise server_error("Server error retrieving followed artists")

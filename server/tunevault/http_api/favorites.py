import logging
from datetime import datetime, timezone
from typing import Dict, Any

from bson import ObjectId
from fastapi import Request, HTTPException
from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError

from ..db.connection import get_database
from ..db.populate import populate, populate_track_refs, populated, drop_missing_tracks
from ..db.queries import Pagination, pagination_envelope
from .errors import ok, created, server_error

logger = logging.getLogger(__name__)

FAVORITE_TRACK_FIELDS = ("title", "artist", "album", "duration", "cover_url", "play_count", "is_active")

class FavoriteRequest(BaseModel):
    track_id: str

def get_db():
    return get_database()

def populate_favorites(db, favorites):
    populate(db, favorites, "track", "tracks", FAVORITE_TRACK_FIELDS)
    populate_track_refs(db, populated(favorites, "track"))
    return drop_missing_tracks(favorites)

# API Endpoints
async def get_favorites_handler(request: Request, user: Dict, params: Dict[str, Any]):
    try:
        db = get_db()
        pagination = Pagination.from_params(params.get("page"), params.get("limit"))
        query = {"user": user["id"]}

        favorites = list(
            db.favorites.find(query, {"_id": 0})
            .sort([("created_at", -1), ("id", -1)])
            .skip(pagination.skip)
            .limit(pagination.limit)
        )
        total = db.favorites.count_documents(query)

        return ok({
            "favorites": populate_favorites(db, favorites),
            "pagination": pagination_envelope(pagination, total),
        })

    except Exception as e:
        logger.error(f"Get favorites error: {e}")
        raise server_error("Server error retrieving favorites")

async def add_favorite_handler(request: Request, user: Dict, favorite_data: FavoriteRequest):
    try:
        db = get_db()
        if not db.tracks.find_one({"id": favorite_data.track_id, "is_active": True}):
            raise HTTPException(status_code=404, detail="Track not found")

        if db.favorites.find_one({"user": user["id"], "track": favorite_data.track_id}):
            raise HTTPException(status_code=400, detail="Track already in favorites")

        favorite = {
            "id": str(ObjectId()),
            "user": user["id"],
            "track": favorite_data.track_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        db.favorites.insert_one(favorite)
        favorite.pop("_id", None)

        return created({"favorite": populate_favorites(db, [favorite])[0]})

    except HTTPException:
        raise
    except DuplicateKeyError:
        # Lost a race against an identical request; the unique index decides
        raise HTTPException(status_code=400, detail="Track already in favorites")
    except Exception as e:
        logger.error(f"Add favorite error: {e}")
        raise server_error("Server error adding favorite")

async def remove_favorite_handler(request: Request, user: Dict, track_id: str):
    try:
        db = get_db()
        result = db.favorites.delete_one({"user": user["id"], "track": track_id})
        if result.deleted_count == 0:
            raise HTTPException(status_code=404, detail="Favorite not found")

        return ok(message="Track removed from favorites successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Remove favorite error: {e}")
        raise server_error("Server error removing favorite")

async def check_favorite_handler(request: Request, user: Dict, track_id: str):
    try:
        db = get_db()
        favorite = db.favorites.find_one({"user": user["id"], "track": track_id})
        return ok({"is_favorited": favorite is not None})

    except Exception as e:
        logger.error(f"Check favorite error: {e}")
        raise server_error("Server error checking favorite status")

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from bson import ObjectId
from fastapi import Request, HTTPException
from pydantic import BaseModel, Field

from ..db.connection import get_database
from ..db.populate import populate_playlists
from ..db.queries import playlist_list_query, run_list_query, pagination_envelope
from .auth import ensure_owner
from .errors import ok, created, server_error

logger = logging.getLogger(__name__)

class PlaylistCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    is_public: bool = False
    cover_url: str = ""
    tracks: List[str] = []

class PlaylistUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_public: Optional[bool] = None
    cover_url: Optional[str] = None

class PlaylistTrackRequest(BaseModel):
    track_id: str

class FeatureRequest(BaseModel):
    is_featured: bool

def get_db():
    return get_database()

def can_read(playlist: Dict, user: Optional[Dict]) -> bool:
    return playlist.get("is_public", False) or (user is not None and user["id"] == playlist.get("user"))

def find_playlist(db, playlist_id: str) -> Dict:
    playlist = db.playlists.find_one({"id": playlist_id}, {"_id": 0})
    if not playlist:
        raise HTTPException(status_code=404, detail="Playlist not found")
    return playlist

def load_populated(db, playlist_id: str) -> Dict:
    playlist = db.playlists.find_one({"id": playlist_id}, {"_id": 0})
    populate_playlists(db, [playlist], track_fields=("title", "artist", "album", "duration", "cover_url"))
    return playlist

# API Endpoints
async def get_playlists_handler(request: Request, user: Optional[Dict], params: Dict[str, Any]):
    """Public playlists, plus the caller's own when authenticated"""
    try:
        db = get_db()
        query = playlist_list_query(params, user["id"] if user else None)
        playlists, total = run_list_query(db.playlists, query)
        populate_playlists(db, playlists, track_fields=("title", "artist", "album", "duration"))

        return ok({
            "playlists": playlists,
            "pagination": pagination_envelope(query.pagination, total),
        })

    except Exception as e:
        logger.error(f"Get playlists error: {e}")
        raise server_error("Server error retrieving playlists")

async def get_featured_playlists_handler(request: Request, limit: Any):
    try:
        db = get_db()
        query = playlist_list_query({"featured": "true", "limit": limit})
        playlists, _ = run_list_query(db.playlists, query)
        populate_playlists(db, playlists, track_fields=("title", "artist", "album", "duration"))

        return ok({"playlists": playlists})

    except Exception as e:
        logger.error(f"Get featured playlists error: {e}")
        raise server_error("Server error retrieving featured playlists")

async def get_user_playlists_handler(request: Request, user: Optional[Dict], owner_id: str):
    try:
        db = get_db()
        query = {"user": owner_id}
        # Non-owners only see public playlists
        if not user or user["id"] != owner_id:
            query["is_public"] = True

        playlists = list(db.playlists.find(query, {"_id": 0}).sort([("created_at", -1), ("id", -1)]))
        populate_playlists(db, playlists, track_fields=("title", "artist", "album", "duration"))

        return ok({"playlists": playlists})

    except Exception as e:
        logger.error(f"Get user playlists error: {e}")
        raise server_error("Server error retrieving user playlists")

async def get_playlist_handler(request: Request, user: Optional[Dict], playlist_id: str):
    try:
        db = get_db()
        playlist = find_playlist(db, playlist_id)
        if not can_read(playlist, user):
            raise HTTPException(status_code=403, detail="Access denied")

        return ok({"playlist": load_populated(db, playlist_id)})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get playlist error: {e}")
        raise server_error("Server error retrieving playlist")

async def create_playlist_handler(request: Request, user: Dict, playlist_data: PlaylistCreate):
    try:
        db = get_db()
        fields = playlist_data.model_dump()

        # Keep first occurrence order, only active tracks
        requested = list(dict.fromkeys(fields.pop("tracks")))
        active = {t["id"] for t in db.tracks.find({"id": {"$in": requested}, "is_active": True}, {"id": 1})}

        now = datetime.now(timezone.utc).isoformat()
        playlist = {
            "id": str(ObjectId()),
            **fields,
            "user": user["id"],
            "tracks": [track_id for track_id in requested if track_id in active],
            "is_featured": False,
            "play_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        db.playlists.insert_one(playlist)

        return created({"playlist": load_populated(db, playlist["id"])})

    except Exception as e:
        logger.error(f"Create playlist error: {e}")
        raise server_error("Server error creating playlist")

async def update_playlist_handler(request: Request, user: Dict, playlist_id: str, playlist_data: PlaylistUpdate):
    try:
        db = get_db()
        playlist = find_playlist(db, playlist_id)
        ensure_owner(user, playlist.get("user"), "Not authorized to update this playlist")

        update_fields = {k: v for k, v in playlist_data.model_dump(exclude_unset=True).items() if v is not None}
        update_fields["updated_at"] = datetime.now(timezone.utc).isoformat()
        db.playlists.update_one({"id": playlist_id}, {"$set": update_fields})

        return ok({"playlist": load_populated(db, playlist_id)})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update playlist error: {e}")
        raise server_error("Server error updating playlist")

async def delete_playlist_handler(request: Request, user: Dict, playlist_id: str):
    try:
        db = get_db()
        playlist = find_playlist(db, playlist_id)
        ensure_owner(user, playlist.get("user"), "Not authorized to delete this playlist")

        db.playlists.delete_one({"id": playlist_id})

        return ok(message="Playlist deleted successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete playlist error: {e}")
        raise server_error("Server error deleting playlist")

async def add_track_handler(request: Request, user: Dict, playlist_id: str, track_data: PlaylistTrackRequest):
    try:
        db = get_db()
        playlist = find_playlist(db, playlist_id)
        ensure_owner(user, playlist.get("user"), "Not authorized to modify this playlist")

        if not db.tracks.find_one({"id": track_data.track_id, "is_active": True}):
            raise HTTPException(status_code=404, detail="Track not found")

        result = db.playlists.update_one(
            {"id": playlist_id, "tracks": {"$ne": track_data.track_id}},
            {
                "$push": {"tracks": track_data.track_id},
                "$set": {"updated_at": datetime.now(timezone.utc).isoformat()},
            }
        )
        if result.modified_count == 0:
            raise HTTPException(status_code=400, detail="Track already in playlist")

        return ok(message="Track added to playlist successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Add track to playlist error: {e}")
        raise server_error("Server error adding track to playlist")

async def remove_track_handler(request: Request, user: Dict, playlist_id: str, track_id: str):
    try:
        db = get_db()
        playlist = find_playlist(db, playlist_id)
        ensure_owner(user, playlist.get("user"), "Not authorized to modify this playlist")

        db.playlists.update_one(
            {"id": playlist_id},
            {
                "$pull": {"tracks": track_id},
                "$set": {"updated_at": datetime.now(timezone.utc).isoformat()},
            }
        )

        return ok(message="Track removed from playlist successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Remove track from playlist error: {e}")
        raise server_error("Server error removing track from playlist")

async def feature_playlist_handler(request: Request, playlist_id: str, feature_data: FeatureRequest):
    """Admin toggle for the featured shelf"""
    try:
        db = get_db()
        find_playlist(db, playlist_id)

        db.playlists.update_one(
            {"id": playlist_id},
            {"$set": {"is_featured": feature_data.is_featured, "updated_at": datetime.now(timezone.utc).isoformat()}}
        )

        return ok({"playlist": load_populated(db, playlist_id)})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Feature playlist error: {e}")
        raise server_error("Server error updating playlist")

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from bson import ObjectId
from fastapi import Request, HTTPException
from pydantic import BaseModel, Field

from ..db import relations
from ..db.connection import get_database
from ..db.populate import populate, populate_track_details
from ..db.queries import Pagination, run_list_query, track_list_query, pagination_envelope, search_predicate, active_predicate, combine
from .errors import ok, created, server_error

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 10

class TrackCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    artist: str
    album: str
    genres: List[str] = []
    moods: List[str] = []
    duration: float = Field(..., gt=0)
    file_url: str = Field(..., min_length=1)
    cover_url: str = ""
    lyrics: str = ""

class TrackUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    genres: Optional[List[str]] = None
    moods: Optional[List[str]] = None
    duration: Optional[float] = Field(None, gt=0)
    file_url: Optional[str] = Field(None, min_length=1)
    cover_url: Optional[str] = None
    lyrics: Optional[str] = None

class PlayRequest(BaseModel):
    duration: float = Field(0, ge=0)
    completed: bool = False

def get_db():
    return get_database()

def find_active_track(db, track_id: str) -> Optional[Dict]:
    track = db.tracks.find_one({"id": track_id}, {"_id": 0})
    if not track or not track.get("is_active", False):
        return None
    return track

def populate_single(db, track: Dict) -> Dict:
    populate(db, [track], "artist", "artists", ("name", "bio", "image_url"))
    populate(db, [track], "album", "albums", ("title", "cover_url", "release_date"))
    populate(db, [track], "genres", "genres", ("name", "color"), active_only=True)
    populate(db, [track], "moods", "moods", ("name", "color", "icon"), active_only=True)
    return track

# API Endpoints
async def get_tracks_handler(request: Request, params: Dict[str, Any]):
    """Filtered, paginated track listing"""
    try:
        db = get_db()
        query = track_list_query(params)
        tracks, total = run_list_query(db.tracks, query)
        populate_track_details(db, tracks)

        return ok({
            "tracks": tracks,
            "pagination": pagination_envelope(query.pagination, total),
        })

    except Exception as e:
        logger.error(f"Get tracks error: {e}")
        raise server_error("Server error retrieving tracks")

async def search_tracks_handler(request: Request, q: Optional[str], limit: Any):
    if not q:
        raise HTTPException(status_code=400, detail="Search query is required")

    try:
        db = get_db()
        pagination = Pagination.from_params(limit=limit, default_limit=DEFAULT_SEARCH_LIMIT)
        tracks = list(
            db.tracks.find(combine([active_predicate(), search_predicate("title", q)]), {"_id": 0})
            .limit(pagination.limit)
        )
        populate(db, tracks, "artist", "artists", ("name",))
        populate(db, tracks, "album", "albums", ("title",))

        return ok({"tracks": tracks})

    except Exception as e:
        logger.error(f"Search tracks error: {e}")
        raise server_error("Server error searching tracks")

async def get_track_handler(request: Request, track_id: str):
    try:
        db = get_db()
        track = find_active_track(db, track_id)
        if not track:
            raise HTTPException(status_code=404, detail="Track not found")

        return ok({"track": populate_single(db, track)})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get track error: {e}")
        raise server_error("Server error retrieving track")

async def create_track_handler(request: Request, track_data: TrackCreate):
    try:
        db = get_db()

        if not db.artists.find_one({"id": track_data.artist, "is_active": True}):
            raise HTTPException(status_code=400, detail="Artist not found")
        if not db.albums.find_one({"id": track_data.album, "is_active": True}):
            raise HTTPException(status_code=400, detail="Album not found")

        now = datetime.now(timezone.utc).isoformat()
        track = {
            "id": str(ObjectId()),
            **track_data.model_dump(),
            "play_count": 0,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        relations.create_track(db, track)

        return created({"track": populate_single(db, dict(track))})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create track error: {e}")
        raise server_error("Server error creating track")

async def update_track_handler(request: Request, track_id: str, track_data: TrackUpdate):
    try:
        db = get_db()
        track = find_active_track(db, track_id)
        if not track:
            raise HTTPException(status_code=404, detail="Track not found")

        update_fields = {k: v for k, v in track_data.model_dump(exclude_unset=True).items() if v is not None}
        update_fields["updated_at"] = datetime.now(timezone.utc).isoformat()

        if "duration" in update_fields and track.get("album"):
            # Keep the album running time in step with its tracks
            db.albums.update_one(
                {"id": track["album"], "tracks": track_id},
                {"$inc": {"total_duration": update_fields["duration"] - track["duration"]}}
            )
        db.tracks.update_one({"id": track_id}, {"$set": update_fields})

        return ok({"track": populate_single(db, find_active_track(db, track_id))})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update track error: {e}")
        raise server_error("Server error updating track")

async def delete_track_handler(request: Request, track_id: str):
    try:
        db = get_db()
        track = find_active_track(db, track_id)
        if not track:
            raise HTTPException(status_code=404, detail="Track not found")

        relations.soft_delete_track(db, track)

        return ok(message="Track deleted successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete track error: {e}")
        raise server_error("Server error deleting track")

async def record_play_handler(request: Request, user: Dict, track_id: str, play_data: PlayRequest):
    """Append a play-history row and count the play on the track"""
    try:
        db = get_db()
        if not find_active_track(db, track_id):
            raise HTTPException(status_code=404, detail="Track not found")

        now = datetime.now(timezone.utc).isoformat()
        entry = relations.record_play(db, {
            "id": str(ObjectId()),
            "user": user["id"],
            "track": track_id,
            "played_at": now,
            "duration": play_data.duration,
            "completed": play_data.completed,
            "created_at": now,
        })

        return created({"play_history": entry})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Record play error: {e}")
        raise server_error("Server error recording play")

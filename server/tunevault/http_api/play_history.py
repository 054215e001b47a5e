import logging
from typing import Dict, Any

from fastapi import Request, HTTPException

from ..db.aggregations import DEFAULT_RECENT_LIMIT, listening_stats, recent_tracks
from ..db.connection import get_database
from ..db.populate import populate, populate_track_refs, populated, drop_missing_tracks
from ..db.queries import Pagination, coerce_int, pagination_envelope
from .auth import ensure_owner
from .errors import ok, server_error

logger = logging.getLogger(__name__)

HISTORY_TRACK_FIELDS = ("title", "artist", "album", "duration", "cover_url", "play_count", "is_active")

def get_db():
    return get_database()

# API Endpoints
async def get_history_handler(request: Request, user: Dict, params: Dict[str, Any]):
    try:
        db = get_db()
        pagination = Pagination.from_params(params.get("page"), params.get("limit"))
        query = {"user": user["id"]}

        history = list(
            db.play_history.find(query, {"_id": 0})
            .sort([("played_at", -1), ("id", -1)])
            .skip(pagination.skip)
            .limit(pagination.limit)
        )
        total = db.play_history.count_documents(query)

        populate(db, history, "track", "tracks", HISTORY_TRACK_FIELDS)
        populate_track_refs(db, populated(history, "track"))

        return ok({
            "play_history": drop_missing_tracks(history),
            "pagination": pagination_envelope(pagination, total),
        })

    except Exception as e:
        logger.error(f"Get play history error: {e}")
        raise server_error("Server error retrieving play history")

async def get_recent_handler(request: Request, user: Dict, limit: Any):
    try:
        db = get_db()
        rows = recent_tracks(db, user["id"], coerce_int(limit, DEFAULT_RECENT_LIMIT))
        return ok({"recent_tracks": rows})

    except Exception as e:
        logger.error(f"Get recent tracks error: {e}")
        raise server_error("Server error retrieving recent tracks")

async def get_stats_handler(request: Request, user: Dict):
    try:
        return ok({"stats": listening_stats(get_db(), user["id"])})

    except Exception as e:
        logger.error(f"Get listening stats error: {e}")
        raise server_error("Server error retrieving listening stats")

async def clear_history_handler(request: Request, user: Dict):
    try:
        result = get_db().play_history.delete_many({"user": user["id"]})
        logger.info(f"🧹 Cleared {result.deleted_count} history entries for user {user['id']}")

        return ok(message="Play history cleared successfully")

    except Exception as e:
        logger.error(f"Clear play history error: {e}")
        raise server_error("Server error clearing play history")

async def remove_entry_handler(request: Request, user: Dict, entry_id: str):
    try:
        db = get_db()
        entry = db.play_history.find_one({"id": entry_id}, {"_id": 0})
        if not entry:
            raise HTTPException(status_code=404, detail="Play history entry not found")

        ensure_owner(user, entry.get("user"), "Not authorized to delete this entry")
        db.play_history.delete_one({"id": entry_id})

        return ok(message="Play history entry removed successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Remove play history entry error: {e}")
        raise server_error("Server error removing play history entry")

"""
Derived views over play history
"""

from typing import Dict, List

from .populate import populate_track_refs

DEFAULT_RECENT_LIMIT = 10


def recent_tracks_pipeline(user_id: str, limit: int) -> List[Dict]:
    return [
        {"$match": {"user": user_id}},
        {
            "$group": {
                "_id": "$track",
                "played_at": {"$max": "$played_at"},
                "play_count": {"$sum": 1},
                # Row ids are ObjectId hex strings, so the max is the latest stored row
                "last_entry": {"$max": "$id"},
            }
        },
        {"$sort": {"played_at": -1, "last_entry": -1}},
        {"$limit": limit},
        {
            "$lookup": {
                "from": "tracks",
                "localField": "_id",
                "foreignField": "id",
                "as": "track",
            }
        },
        {"$unwind": "$track"},
        {"$match": {"track.is_active": True}},
    ]


def recent_tracks(db, user_id: str, limit: int = DEFAULT_RECENT_LIMIT) -> List[Dict]:
    """Distinct tracks the user played, most recent first, at most `limit`"""
    rows = list(db.play_history.aggregate(recent_tracks_pipeline(user_id, limit)))

    tracks = []
    for row in rows:
        track = {k: v for k, v in row["track"].items() if k != "_id"}
        tracks.append(track)

    populate_track_refs(db, tracks)

    return [
        {
            "track": track,
            "played_at": row["played_at"],
            "play_count": row["play_count"],
        }
        for row, track in zip(rows, tracks)
    ]


def listening_stats_pipeline(user_id: str) -> List[Dict]:
    return [
        {"$match": {"user": user_id}},
        {
            "$lookup": {
                "from": "tracks",
                "localField": "track",
                "foreignField": "id",
                "as": "track_doc",
            }
        },
        {"$unwind": "$track_doc"},
        {"$match": {"track_doc.is_active": True}},
        {
            "$group": {
                "_id": None,
                "total_plays": {"$sum": 1},
                "total_duration": {"$sum": "$duration"},
                "unique_tracks": {"$addToSet": "$track"},
            }
        },
    ]


def listening_stats(db, user_id: str) -> Dict:
    """Play count, listened seconds and distinct tracks for a user"""
    rows = list(db.play_history.aggregate(listening_stats_pipeline(user_id)))
    if not rows:
        return {"total_plays": 0, "total_duration": 0, "unique_tracks_count": 0}

    stats = rows[0]
    return {
        "total_plays": stats["total_plays"],
        "total_duration": stats["total_duration"],
        "unique_tracks_count": len(stats["unique_tracks"]),
    }

"""
Relationship maintenance for the catalog

Artists and albums keep denormalized lists of their albums/tracks. Every
write that touches a forward reference also updates the inverse list, and
both happen in one transaction.
"""

import logging
from datetime import datetime, timezone
from typing import Dict

from .connection import run_in_transaction

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_track(db, track: Dict) -> Dict:
    """Insert a track and register it on its album and artist"""
    def _write(session):
        db.tracks.insert_one(track, session=session)
        db.albums.update_one(
            {"id": track["album"]},
            {"$addToSet": {"tracks": track["id"]}, "$inc": {"total_duration": track["duration"]}},
            session=session,
        )
        db.artists.update_one(
            {"id": track["artist"]},
            {"$addToSet": {"tracks": track["id"]}},
            session=session,
        )

    run_in_transaction(_write)
    track.pop("_id", None)
    logger.info(f"🎵 Track created: {track['id']} on album {track['album']}")
    return track


def soft_delete_track(db, track: Dict) -> None:
    """Deactivate a track and unregister it from its album and artist"""
    def _write(session):
        db.tracks.update_one(
            {"id": track["id"]},
            {"$set": {"is_active": False, "updated_at": _now()}},
            session=session,
        )
        if track.get("album"):
            db.albums.update_one(
                {"id": track["album"], "tracks": track["id"]},
                {"$pull": {"tracks": track["id"]}, "$inc": {"total_duration": -track.get("duration", 0)}},
                session=session,
            )
        if track.get("artist"):
            db.artists.update_one(
                {"id": track["artist"]},
                {"$pull": {"tracks": track["id"]}},
                session=session,
            )

    run_in_transaction(_write)
    logger.info(f"🗑️  Track deactivated: {track['id']}")


def create_album(db, album: Dict) -> Dict:
    """Insert an album and register it on its artist"""
    def _write(session):
        db.albums.insert_one(album, session=session)
        db.artists.update_one(
            {"id": album["artist"]},
            {"$addToSet": {"albums": album["id"]}},
            session=session,
        )

    run_in_transaction(_write)
    album.pop("_id", None)
    logger.info(f"💿 Album created: {album['id']} for artist {album['artist']}")
    return album


def soft_delete_album(db, album: Dict) -> None:
    """Deactivate an album; its tracks stay but lose the album reference"""
    def _write(session):
        db.albums.update_one(
            {"id": album["id"]},
            {"$set": {"is_active": False, "updated_at": _now()}},
            session=session,
        )
        if album.get("artist"):
            db.artists.update_one(
                {"id": album["artist"]},
                {"$pull": {"albums": album["id"]}},
                session=session,
            )
        db.tracks.update_many(
            {"album": album["id"]},
            {"$unset": {"album": ""}},
            session=session,
        )

    run_in_transaction(_write)
    logger.info(f"🗑️  Album deactivated: {album['id']}")


def soft_delete_artist(db, artist: Dict) -> None:
    """Deactivate an artist; tracks and albums stay but lose the artist reference"""
    def _write(session):
        db.artists.update_one(
            {"id": artist["id"]},
            {"$set": {"is_active": False, "updated_at": _now()}},
            session=session,
        )
        db.tracks.update_many(
            {"artist": artist["id"]},
            {"$unset": {"artist": ""}},
            session=session,
        )
        db.albums.update_many(
            {"artist": artist["id"]},
            {"$unset": {"artist": ""}},
            session=session,
        )

    run_in_transaction(_write)
    logger.info(f"🗑️  Artist deactivated: {artist['id']}")


def record_play(db, entry: Dict) -> Dict:
    """Append a play-history row and bump the track's play count"""
    def _write(session):
        db.play_history.insert_one(entry, session=session)
        db.tracks.update_one(
            {"id": entry["track"]},
            {"$inc": {"play_count": 1}},
            session=session,
        )

    run_in_transaction(_write)
    entry.pop("_id", None)
    return entry

"""
Relational lookups: replace stored reference ids with the referenced
documents (or a selection of their fields), one query per path.
"""

from typing import Dict, Iterable, List, Optional


def _projection(fields: Optional[Iterable[str]]) -> Dict[str, int]:
    projection = {"_id": 0}
    if fields:
        projection.update({"id": 1})
        projection.update({name: 1 for name in fields})
    return projection


def populate(
    db,
    docs: List[Dict],
    path: str,
    collection: str,
    fields: Optional[Iterable[str]] = None,
    active_only: bool = False,
) -> List[Dict]:
    """
    Resolve docs[*][path] in place.

    A scalar reference becomes the referenced document or None when it is
    gone. A list of references keeps its order and drops ids that no longer
    resolve. With active_only, soft-deleted documents count as gone.
    """
    ids = set()
    for doc in docs:
        value = doc.get(path)
        if isinstance(value, list):
            ids.update(v for v in value if isinstance(v, str))
        elif isinstance(value, str):
            ids.add(value)

    if not ids:
        for doc in docs:
            if isinstance(doc.get(path), str):
                doc[path] = None
        return docs

    query = {"id": {"$in": list(ids)}}
    if active_only:
        query["is_active"] = True
    found = {ref["id"]: ref for ref in db[collection].find(query, _projection(fields))}

    for doc in docs:
        value = doc.get(path)
        if isinstance(value, list):
            doc[path] = [found[v] for v in value if v in found]
        elif isinstance(value, str):
            doc[path] = found.get(value)

    return docs


def populated(docs: List[Dict], path: str) -> List[Dict]:
    """The sub-documents a previous populate() placed at path"""
    nested = []
    for doc in docs:
        value = doc.get(path)
        if isinstance(value, list):
            nested.extend(v for v in value if isinstance(v, dict))
        elif isinstance(value, dict):
            nested.append(value)
    return nested


# Shapes shared by several controllers

def populate_track_refs(db, tracks: List[Dict], artist_fields=("name",), album_fields=("title", "cover_url")) -> List[Dict]:
    populate(db, tracks, "artist", "artists", artist_fields)
    populate(db, tracks, "album", "albums", album_fields)
    return tracks


def populate_track_details(db, tracks: List[Dict]) -> List[Dict]:
    populate_track_refs(db, tracks)
    populate(db, tracks, "genres", "genres", ("name", "color"), active_only=True)
    populate(db, tracks, "moods", "moods", ("name", "color", "icon"), active_only=True)
    return tracks


def populate_playlists(db, playlists: List[Dict], track_fields=("title", "artist", "album", "duration", "cover_url")) -> List[Dict]:
    populate(db, playlists, "user", "users", ("name",))
    populate(db, playlists, "tracks", "tracks", track_fields, active_only=True)
    populate_track_refs(db, populated(playlists, "tracks"), album_fields=("title",))
    return playlists


def drop_missing_tracks(rows: List[Dict]) -> List[Dict]:
    """Rows whose populated track is gone or deactivated are filtered out"""
    return [row for row in rows if row.get("track") and row["track"].get("is_active", True)]

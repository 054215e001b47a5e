"""
Query building for list endpoints

Request parameters are turned into a list of independent predicates which are
ANDed into one Mongo filter, plus the sort order and skip/limit window.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20

Predicate = Dict[str, Any]
SortSpec = List[Tuple[str, int]]


def coerce_int(value: Any, default: int) -> int:
    """Parse a positive integer, falling back to default for anything else"""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


@dataclass
class Pagination:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @classmethod
    def from_params(cls, page: Any = None, limit: Any = None, default_limit: int = DEFAULT_LIMIT) -> "Pagination":
        return cls(page=coerce_int(page, DEFAULT_PAGE), limit=coerce_int(limit, default_limit))

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def pagination_envelope(pagination: Pagination, total: int) -> Dict[str, int]:
    return {
        "page": pagination.page,
        "limit": pagination.limit,
        "total": total,
        "pages": math.ceil(total / pagination.limit),
    }


# =============================================================================
# PREDICATES
# =============================================================================

def active_predicate() -> Predicate:
    return {"is_active": True}


def search_predicate(field_name: str, text: Optional[str]) -> Optional[Predicate]:
    """Case-insensitive substring match on a single field"""
    if not text:
        return None
    return {field_name: {"$regex": re.escape(text), "$options": "i"}}


def equals_predicate(field_name: str, value: Optional[str]) -> Optional[Predicate]:
    # Matches scalar references and membership in reference arrays alike
    if not value:
        return None
    return {field_name: value}


def flag_predicate(field_name: str, raw: Any) -> Optional[Predicate]:
    """Only an explicit true narrows the result; anything else is ignored"""
    if raw is True or (isinstance(raw, str) and raw.lower() == "true"):
        return {field_name: True}
    return None


def visibility_predicate(user_id: Optional[str]) -> Predicate:
    if user_id:
        return {"$or": [{"user": user_id}, {"is_public": True}]}
    return {"is_public": True}


def combine(predicates: List[Optional[Predicate]]) -> Predicate:
    """AND together the predicates that apply"""
    applied = [p for p in predicates if p]
    if not applied:
        return {}
    if len(applied) == 1:
        return applied[0]
    return {"$and": applied}


# =============================================================================
# PER-RESOURCE LIST QUERIES
# =============================================================================

@dataclass
class ListQuery:
    filter: Predicate
    sort: SortSpec
    pagination: Pagination = field(default_factory=Pagination)

    @property
    def skip(self) -> int:
        return self.pagination.skip

    @property
    def limit(self) -> int:
        return self.pagination.limit


def track_list_query(params: Dict[str, Any]) -> ListQuery:
    return ListQuery(
        filter=combine([
            active_predicate(),
            search_predicate("title", params.get("search")),
            equals_predicate("genres", params.get("genre")),
            equals_predicate("moods", params.get("mood")),
            equals_predicate("artist", params.get("artist")),
            equals_predicate("album", params.get("album")),
        ]),
        sort=[("created_at", -1), ("id", -1)],
        pagination=Pagination.from_params(params.get("page"), params.get("limit")),
    )


def album_list_query(params: Dict[str, Any]) -> ListQuery:
    return ListQuery(
        filter=combine([
            active_predicate(),
            search_predicate("title", params.get("search")),
            equals_predicate("artist", params.get("artist")),
            equals_predicate("genres", params.get("genre")),
        ]),
        sort=[("release_date", -1), ("id", -1)],
        pagination=Pagination.from_params(params.get("page"), params.get("limit")),
    )


def artist_list_query(params: Dict[str, Any]) -> ListQuery:
    return ListQuery(
        filter=combine([
            active_predicate(),
            search_predicate("name", params.get("search")),
            equals_predicate("genres", params.get("genre")),
            flag_predicate("is_verified", params.get("verified")),
        ]),
        sort=[("monthly_listeners", -1), ("name", 1), ("id", -1)],
        pagination=Pagination.from_params(params.get("page"), params.get("limit")),
    )


def playlist_list_query(params: Dict[str, Any], user_id: Optional[str] = None) -> ListQuery:
    return ListQuery(
        filter=combine([
            visibility_predicate(user_id),
            search_predicate("name", params.get("search")),
            flag_predicate("is_featured", params.get("featured")),
        ]),
        sort=[("created_at", -1), ("id", -1)],
        pagination=Pagination.from_params(params.get("page"), params.get("limit")),
    )


def run_list_query(collection, query: ListQuery, projection: Optional[Dict] = None) -> Tuple[List[Dict], int]:
    """Fetch one page and the total matching count"""
    projection = projection or {"_id": 0}
    items = list(
        collection.find(query.filter, projection)
        .sort(query.sort)
        .skip(query.skip)
        .limit(query.limit)
    )
    total = collection.count_documents(query.filter)
    return items, total

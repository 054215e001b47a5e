"""Tests for list query building."""

import pytest

from tunevault.db.queries import (
    Pagination,
    active_predicate,
    album_list_query,
    artist_list_query,
    coerce_int,
    combine,
    equals_predicate,
    flag_predicate,
    pagination_envelope,
    playlist_list_query,
    search_predicate,
    track_list_query,
    visibility_predicate,
)


class TestCoerceInt:
    @pytest.mark.parametrize("raw, expected", [("3", 3), (7, 7), (" 12 ", 12)])
    def test_numeric(self, raw, expected) -> None:
        assert coerce_int(raw, 1) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "2.5", "0", "-4", True])
    def test_falls_back_to_default(self, raw) -> None:
        assert coerce_int(raw, 20) == 20


class TestPagination:
    def test_defaults(self) -> None:
        pagination = Pagination.from_params()
        assert (pagination.page, pagination.limit, pagination.skip) == (1, 20, 0)

    def test_skip(self) -> None:
        assert Pagination.from_params("3", "15").skip == 30

    def test_garbage_uses_defaults(self) -> None:
        pagination = Pagination.from_params("first", "lots")
        assert (pagination.page, pagination.limit) == (1, 20)

    def test_envelope_rounds_pages_up(self) -> None:
        assert pagination_envelope(Pagination(page=2, limit=20), 41) == {
            "page": 2,
            "limit": 20,
            "total": 41,
            "pages": 3,
        }

    def test_envelope_empty(self) -> None:
        assert pagination_envelope(Pagination(), 0)["pages"] == 0


class TestPredicates:
    def test_search_is_case_insensitive_and_escaped(self) -> None:
        assert search_predicate("title", "a.b (live)") == {
            "title": {"$regex": r"a\.b\ \(live\)", "$options": "i"}
        }

    def test_search_empty(self) -> None:
        assert search_predicate("title", "") is None
        assert search_predicate("title", None) is None

    def test_equals(self) -> None:
        assert equals_predicate("genres", "g1") == {"genres": "g1"}
        assert equals_predicate("genres", None) is None

    @pytest.mark.parametrize("raw", ["true", "TRUE", True])
    def test_flag_applies(self, raw) -> None:
        assert flag_predicate("is_verified", raw) == {"is_verified": True}

    @pytest.mark.parametrize("raw", ["false", "yes", None, False, "1"])
    def test_flag_ignored(self, raw) -> None:
        assert flag_predicate("is_verified", raw) is None

    def test_visibility_anonymous(self) -> None:
        assert visibility_predicate(None) == {"is_public": True}

    def test_visibility_owner(self) -> None:
        assert visibility_predicate("u1") == {"$or": [{"user": "u1"}, {"is_public": True}]}


class TestCombine:
    def test_nothing(self) -> None:
        assert combine([None, None]) == {}

    def test_single(self) -> None:
        assert combine([None, active_predicate()]) == {"is_active": True}

    def test_and(self) -> None:
        assert combine([active_predicate(), equals_predicate("artist", "a1")]) == {
            "$and": [{"is_active": True}, {"artist": "a1"}]
        }


class TestResourceQueries:
    def test_track_query_without_params_only_filters_active(self) -> None:
        query = track_list_query({})
        assert query.filter == {"is_active": True}
        assert query.sort == [("created_at", -1), ("id", -1)]
        assert (query.skip, query.limit) == (0, 20)

    def test_track_query_filters(self) -> None:
        query = track_list_query({"search": "rain", "genre": "g1", "mood": "m1", "page": "2", "limit": "5"})
        assert query.filter["$and"] == [
            {"is_active": True},
            {"title": {"$regex": "rain", "$options": "i"}},
            {"genres": "g1"},
            {"moods": "m1"},
        ]
        assert (query.skip, query.limit) == (5, 5)

    def test_album_query_sorts_by_release(self) -> None:
        assert album_list_query({}).sort == [("release_date", -1), ("id", -1)]

    def test_artist_query_verified(self) -> None:
        query = artist_list_query({"verified": "true", "search": "owl"})
        assert {"is_verified": True} in query.filter["$and"]
        assert {"name": {"$regex": "owl", "$options": "i"}} in query.filter["$and"]
        assert query.sort == [("monthly_listeners", -1), ("name", 1), ("id", -1)]

    def test_playlist_query_is_never_active_scoped(self) -> None:
        query = playlist_list_query({"featured": "true"})
        assert query.filter == {"$and": [{"is_public": True}, {"is_featured": True}]}
        assert query.sort == [("created_at", -1), ("id", -1)]

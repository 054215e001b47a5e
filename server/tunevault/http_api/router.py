from fastapi import APIRouter, Request, Query, Depends, UploadFile, File, Form
from typing import Optional, Dict

from .auth import get_current_user, get_optional_user, require_admin
from .users import (
    register_handler,
    login_handler,
    refresh_handler,
    logout_handler,
    get_profile_handler,
    update_profile_handler,
    change_password_handler,
    RegisterRequest,
    LoginRequest,
    RefreshRequest,
    UpdateProfileRequest,
    ChangePasswordRequest,
)
from .tracks import (
    get_tracks_handler,
    search_tracks_handler,
    get_track_handler,
    create_track_handler,
    update_track_handler,
    delete_track_handler,
    record_play_handler,
    TrackCreate,
    TrackUpdate,
    PlayRequest,
)
from .albums import (
    get_albums_handler,
    get_album_handler,
    get_albums_by_artist_handler,
    create_album_handler,
    update_album_handler,
    delete_album_handler,
    AlbumCreate,
    AlbumUpdate,
)
from .artists import (
    get_artists_handler,
    get_artist_handler,
    create_artist_handler,
    update_artist_handler,
    delete_artist_handler,
    follow_artist_handler,
    unfollow_artist_handler,
    get_followed_artists_handler,
    ArtistCreate,
    ArtistUpdate,
)
from . import taxonomy
from .taxonomy import GENRES, MOODS, GenreCreate, GenreUpdate, MoodCreate, MoodUpdate
from .playlists import (
    get_playlists_handler,
    get_featured_playlists_handler,
    get_user_playlists_handler,
    get_playlist_handler,
    create_playlist_handler,
    update_playlist_handler,
    delete_playlist_handler,
    add_track_handler,
    remove_track_handler,
    feature_playlist_handler,
    PlaylistCreate,
    PlaylistUpdate,
    PlaylistTrackRequest,
    FeatureRequest,
)
from .favorites import (
    get_favorites_handler,
    add_favorite_handler,
    remove_favorite_handler,
    check_favorite_handler,
    FavoriteRequest,
)
from .play_history import (
    get_history_handler,
    get_recent_handler,
    get_stats_handler,
    clear_history_handler,
    remove_entry_handler,
)
from .upload import upload_track_handler, upload_image_handler, delete_file_handler

router = APIRouter()

# Health check endpoint
@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"success": True, "status": "OK", "message": "Server is running"}

# Authentication endpoints
@router.post("/auth/register", status_code=201)
async def register(request: Request, register_data: RegisterRequest):
    return await register_handler(request, register_data)

@router.post("/auth/login")
async def login(request: Request, login_data: LoginRequest):
    """User login with email and password"""
    return await login_handler(request, login_data)

@router.post("/auth/refresh")
async def refresh(request: Request, refresh_data: RefreshRequest):
    return await refresh_handler(request, refresh_data)

@router.post("/auth/logout")
async def logout(request: Request, user: Dict = Depends(get_current_user)):
    return await logout_handler(request, user)

@router.get("/auth/profile")
async def get_profile(request: Request, user: Dict = Depends(get_current_user)):
    return await get_profile_handler(request, user)

@router.put("/auth/profile")
async def update_profile(request: Request, profile_data: UpdateProfileRequest, user: Dict = Depends(get_current_user)):
    return await update_profile_handler(request, user, profile_data)

@router.put("/auth/change-password")
async def change_password(request: Request, password_data: ChangePasswordRequest, user: Dict = Depends(get_current_user)):
    return await change_password_handler(request, user, password_data)

# Track endpoints
@router.get("/tracks")
async def get_tracks(
    request: Request,
    search: Optional[str] = Query(None),
    genre: Optional[str] = Query(None),
    mood: Optional[str] = Query(None),
    artist: Optional[str] = Query(None),
    album: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
):
    """Filtered, paginated list of active tracks"""
    params = {"search": search, "genre": genre, "mood": mood, "artist": artist, "album": album, "page": page, "limit": limit}
    return await get_tracks_handler(request, params)

@router.get("/tracks/search")
async def search_tracks(request: Request, q: Optional[str] = Query(None), limit: Optional[str] = Query(None)):
    return await search_tracks_handler(request, q, limit)

@router.get("/tracks/{track_id}")
async def get_track(request: Request, track_id: str):
    return await get_track_handler(request, track_id)

@router.post("/tracks", status_code=201)
async def create_track(request: Request, track_data: TrackCreate, admin: Dict = Depends(require_admin)):
    return await create_track_handler(request, track_data)

@router.put("/tracks/{track_id}")
async def update_track(request: Request, track_id: str, track_data: TrackUpdate, admin: Dict = Depends(require_admin)):
    return await update_track_handler(request, track_id, track_data)

@router.delete("/tracks/{track_id}")
async def delete_track(request: Request, track_id: str, admin: Dict = Depends(require_admin)):
    return await delete_track_handler(request, track_id)

@router.post("/tracks/{track_id}/play", status_code=201)
async def record_play(request: Request, track_id: str, play_data: PlayRequest, user: Dict = Depends(get_current_user)):
    """Record that the caller played a track"""
    return await record_play_handler(request, user, track_id, play_data)

# Album endpoints
@router.get("/albums")
async def get_albums(
    request: Request,
    search: Optional[str] = Query(None),
    artist: Optional[str] = Query(None),
    genre: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
):
    params = {"search": search, "artist": artist, "genre": genre, "page": page, "limit": limit}
    return await get_albums_handler(request, params)

@router.get("/albums/artist/{artist_id}")
async def get_albums_by_artist(request: Request, artist_id: str):
    return await get_albums_by_artist_handler(request, artist_id)

@router.get("/albums/{album_id}")
async def get_album(request: Request, album_id: str):
    return await get_album_handler(request, album_id)

@router.post("/albums", status_code=201)
async def create_album(request: Request, album_data: AlbumCreate, admin: Dict = Depends(require_admin)):
    return await create_album_handler(request, album_data)

@router.put("/albums/{album_id}")
async def update_album(request: Request, album_id: str, album_data: AlbumUpdate, admin: Dict = Depends(require_admin)):
    return await update_album_handler(request, album_id, album_data)

@router.delete("/albums/{album_id}")
async def delete_album(request: Request, album_id: str, admin: Dict = Depends(require_admin)):
    return await delete_album_handler(request, album_id)

# Artist endpoints
@router.get("/artists")
async def get_artists(
    request: Request,
    search: Optional[str] = Query(None),
    genre: Optional[str] = Query(None),
    verified: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
):
    params = {"search": search, "genre": genre, "verified": verified, "page": page, "limit": limit}
    return await get_artists_handler(request, params)

@router.get("/artists/followed")
async def get_followed_artists(request: Request, user: Dict = Depends(get_current_user)):
    """Artists the caller follows"""
    return await get_followed_artists_handler(request, user)

@router.get("/artists/{artist_id}")
async def get_artist(request: Request, artist_id: str):
    return await get_artist_handler(request, artist_id)

@router.post("/artists", status_code=201)
async def create_artist(request: Request, artist_data: ArtistCreate, admin: Dict = Depends(require_admin)):
    return await create_artist_handler(request, artist_data)

@router.put("/artists/{artist_id}")
async def update_artist(request: Request, artist_id: str, artist_data: ArtistUpdate, admin: Dict = Depends(require_admin)):
    return await update_artist_handler(request, artist_id, artist_data)

@router.delete("/artists/{artist_id}")
async def delete_artist(request: Request, artist_id: str, admin: Dict = Depends(require_admin)):
    return await delete_artist_handler(request, artist_id)

@router.post("/artists/{artist_id}/follow")
async def follow_artist(request: Request, artist_id: str, user: Dict = Depends(get_current_user)):
    return await follow_artist_handler(request, user, artist_id)

@router.delete("/artists/{artist_id}/follow")
async def unfollow_artist(request: Request, artist_id: str, user: Dict = Depends(get_current_user)):
    return await unfollow_artist_handler(request, user, artist_id)

# Genre endpoints
@router.get("/genres")
async def get_genres(request: Request):
    return await taxonomy.list_handler(request, GENRES)

@router.get("/genres/{genre_id}")
async def get_genre(request: Request, genre_id: str):
    return await taxonomy.get_handler(request, GENRES, genre_id)

@router.post("/genres", status_code=201)
async def create_genre(request: Request, genre_data: GenreCreate, admin: Dict = Depends(require_admin)):
    return await taxonomy.create_handler(request, GENRES, genre_data)

@router.put("/genres/{genre_id}")
async def update_genre(request: Request, genre_id: str, genre_data: GenreUpdate, admin: Dict = Depends(require_admin)):
    return await taxonomy.update_handler(request, GENRES, genre_id, genre_data)

@router.delete("/genres/{genre_id}")
async def delete_genre(request: Request, genre_id: str, admin: Dict = Depends(require_admin)):
    return await taxonomy.delete_handler(request, GENRES, genre_id)

# Mood endpoints
@router.get("/moods")
async def get_moods(request: Request):
    return await taxonomy.list_handler(request, MOODS)

@router.get("/moods/{mood_id}")
async def get_mood(request: Request, mood_id: str):
    return await taxonomy.get_handler(request, MOODS, mood_id)

@router.post("/moods", status_code=201)
async def create_mood(request: Request, mood_data: MoodCreate, admin: Dict = Depends(require_admin)):
    return await taxonomy.create_handler(request, MOODS, mood_data)

@router.put("/moods/{mood_id}")
async def update_mood(request: Request, mood_id: str, mood_data: MoodUpdate, admin: Dict = Depends(require_admin)):
    return await taxonomy.update_handler(request, MOODS, mood_id, mood_data)

@router.delete("/moods/{mood_id}")
async def delete_mood(request: Request, mood_id: str, admin: Dict = Depends(require_admin)):
    return await taxonomy.delete_handler(request, MOODS, mood_id)

# Playlist endpoints
@router.get("/playlists")
async def get_playlists(
    request: Request,
    search: Optional[str] = Query(None),
    featured: Optional[str] = Query(None),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    user: Optional[Dict] = Depends(get_optional_user),
):
    """Public playlists plus the caller's own"""
    params = {"search": search, "featured": featured, "page": page, "limit": limit}
    return await get_playlists_handler(request, user, params)

@router.get("/playlists/featured")
async def get_featured_playlists(request: Request, limit: Optional[str] = Query(None)):
    return await get_featured_playlists_handler(request, limit)

@router.get("/playlists/user/{user_id}")
async def get_user_playlists(request: Request, user_id: str, user: Optional[Dict] = Depends(get_optional_user)):
    return await get_user_playlists_handler(request, user, user_id)

@router.get("/playlists/{playlist_id}")
async def get_playlist(request: Request, playlist_id: str, user: Optional[Dict] = Depends(get_optional_user)):
    return await get_playlist_handler(request, user, playlist_id)

@router.post("/playlists", status_code=201)
async def create_playlist(request: Request, playlist_data: PlaylistCreate, user: Dict = Depends(get_current_user)):
    return await create_playlist_handler(request, user, playlist_data)

@router.put("/playlists/{playlist_id}")
async def update_playlist(request: Request, playlist_id: str, playlist_data: PlaylistUpdate, user: Dict = Depends(get_current_user)):
    return await update_playlist_handler(request, user, playlist_id, playlist_data)

@router.delete("/playlists/{playlist_id}")
async def delete_playlist(request: Request, playlist_id: str, user: Dict = Depends(get_current_user)):
    return await delete_playlist_handler(request, user, playlist_id)

@router.post("/playlists/{playlist_id}/tracks")
async def add_track_to_playlist(request: Request, playlist_id: str, track_data: PlaylistTrackRequest, user: Dict = Depends(get_current_user)):
    return await add_track_handler(request, user, playlist_id, track_data)

@router.delete("/playlists/{playlist_id}/tracks/{track_id}")
async def remove_track_from_playlist(request: Request, playlist_id: str, track_id: str, user: Dict = Depends(get_current_user)):
    return await remove_track_handler(request, user, playlist_id, track_id)

@router.put("/playlists/{playlist_id}/feature")
async def feature_playlist(request: Request, playlist_id: str, feature_data: FeatureRequest, admin: Dict = Depends(require_admin)):
    return await feature_playlist_handler(request, playlist_id, feature_data)

# Favorite endpoints
@router.get("/favorites")
async def get_favorites(
    request: Request,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    user: Dict = Depends(get_current_user),
):
    return await get_favorites_handler(request, user, {"page": page, "limit": limit})

@router.post("/favorites", status_code=201)
async def add_favorite(request: Request, favorite_data: FavoriteRequest, user: Dict = Depends(get_current_user)):
    return await add_favorite_handler(request, user, favorite_data)

@router.get("/favorites/check/{track_id}")
async def check_favorite(request: Request, track_id: str, user: Dict = Depends(get_current_user)):
    return await check_favorite_handler(request, user, track_id)

@router.delete("/favorites/{track_id}")
async def remove_favorite(request: Request, track_id: str, user: Dict = Depends(get_current_user)):
    return await remove_favorite_handler(request, user, track_id)

# Play history endpoints
@router.get("/play-history")
async def get_play_history(
    request: Request,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    user: Dict = Depends(get_current_user),
):
    return await get_history_handler(request, user, {"page": page, "limit": limit})

@router.get("/play-history/recent")
async def get_recent_tracks(request: Request, limit: Optional[str] = Query(None), user: Dict = Depends(get_current_user)):
    """Distinct recently played tracks"""
    return await get_recent_handler(request, user, limit)

@router.get("/play-history/stats")
async def get_listening_stats(request: Request, user: Dict = Depends(get_current_user)):
    return await get_stats_handler(request, user)

@router.delete("/play-history")
async def clear_play_history(request: Request, user: Dict = Depends(get_current_user)):
    return await clear_history_handler(request, user)

@router.delete("/play-history/{entry_id}")
async def remove_play_history_entry(request: Request, entry_id: str, user: Dict = Depends(get_current_user)):
    return await remove_entry_handler(request, user, entry_id)

# File upload endpoints
@router.post("/upload/track")
async def upload_track(
    request: Request,
    track: Optional[UploadFile] = File(None),
    duration: Optional[float] = Form(None),
    admin: Dict = Depends(require_admin),
):
    """Upload an audio file"""
    return await upload_track_handler(request, track, duration)

@router.post("/upload/image")
async def upload_image(
    request: Request,
    image: Optional[UploadFile] = File(None),
    width: Optional[int] = Form(None),
    height: Optional[int] = Form(None),
    admin: Dict = Depends(require_admin),
):
    """Upload an image file"""
    return await upload_image_handler(request, image, width, height)

@router.delete("/upload/{public_id:path}")
async def delete_file(request: Request, public_id: str, admin: Dict = Depends(require_admin)):
    return await delete_file_handler(request, public_id)

"""
Catalog Track Models

Lean dataclasses for the catalog records the engine works with.
Raw catalog payloads are reduced to the handful of fields the engine,
the profile store and the route layer actually need.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

TIME_RANGES = ("short_term", "medium_term", "long_term")

_YEAR_PATTERN = re.compile(r"^(\d{4})")


def best_image(images: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    """
    Pick the largest image from a catalog image list.

    Images without dimensions are only used when nothing else is available.
    """
    if not images:
        return None

    sized = [img for img in images if img.get("height") and img.get("width")]
    sized.sort(key=lambda img: img["height"] * img["width"], reverse=True)

    if sized:
        return sized[0].get("url")
    return images[0].get("url")


@dataclass(frozen=True)
class ArtistRef:
    """Artist identifier and display name, with genres when the catalog provides them."""
    id: Optional[str]
    name: str
    genres: Tuple[str, ...] = ()
    image: Optional[str] = None

    @classmethod
    def from_spotify(cls, payload: Dict[str, Any]) -> "ArtistRef":
        return cls(
            id=payload.get("id"),
            name=(payload.get("name") or "").strip(),
            genres=tuple(payload.get("genres") or ()),
            image=best_image(payload.get("images"))
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArtistRef":
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            genres=tuple(data.get("genres") or ()),
            image=data.get("image")
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "genres": list(self.genres),
            "image": self.image
        }


@dataclass(frozen=True)
class Track:
    """
    A catalog track.

    Immutable once fetched. Scoring never touches these fields; the score
    travels alongside the track in a ScoredTrack.
    """
    id: Optional[str]
    name: str
    artists: Tuple[ArtistRef, ...] = ()
    album: str = "Unknown"
    duration_ms: int = 0
    popularity: int = 0
    preview_url: Optional[str] = None
    external_url: Optional[str] = None
    uri: Optional[str] = None
    album_image: Optional[str] = None
    release_date: Optional[str] = None

    @classmethod
    def from_spotify(cls, payload: Dict[str, Any]) -> "Track":
        """
        Create a lean Track from a full catalog track payload.

        Client-echoed payloads with a plain album name, ``external_url`` or a
        top-level ``release_date`` are accepted too.

        Args:
            payload: Track object as returned by the catalog API

        Returns:
            Track instance
        """
        album = payload.get("album") or {}
        if isinstance(album, str):
            album = {"name": album}
        external_urls = payload.get("external_urls") or {}

        return cls(
            id=payload.get("id"),
            name=payload.get("name") or "",
            artists=tuple(
                ArtistRef(id=artist.get("id"), name=artist.get("name") or "")
                for artist in payload.get("artists") or []
            ),
            album=album.get("name") or "Unknown",
            duration_ms=payload.get("duration_ms") or 0,
            popularity=payload.get("popularity") or 0,
            preview_url=payload.get("preview_url"),
            external_url=external_urls.get("spotify") or payload.get("external_url"),
            uri=payload.get("uri"),
            album_image=best_image(album.get("images")),
            release_date=album.get("release_date") or payload.get("release_date")
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        """Rebuild a Track from its stored dictionary form."""
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            artists=tuple(ArtistRef.from_dict(a) for a in data.get("artists") or []),
            album=data.get("album") or "Unknown",
            duration_ms=data.get("duration_ms") or 0,
            popularity=data.get("popularity") or 0,
            preview_url=data.get("preview_url"),
            external_url=data.get("external_url"),
            uri=data.get("uri"),
            album_image=data.get("album_image"),
            release_date=data.get("release_date")
        )

    @property
    def artist_names(self) -> List[str]:
        return [artist.name for artist in self.artists]

    @property
    def release_year(self) -> Optional[int]:
        """Leading four-digit year of the album release date, if known."""
        if not self.release_date:
            return None
        match = _YEAR_PATTERN.match(self.release_date)
        return int(match.group(1)) if match else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "artists": [artist.to_dict() for artist in self.artists],
            "album": self.album,
            "duration_ms": self.duration_ms,
            "popularity": self.popularity,
            "preview_url": self.preview_url,
            "external_url": self.external_url,
            "uri": self.uri,
            "album_image": self.album_image,
            "release_date": self.release_date
        }


@dataclass(frozen=True)
class ScoredTrack:
    """A candidate track together with its relevance score."""
    track: Track
    score: float


@dataclass
class UserProfile:
    """Account details of the catalog user."""
    id: str
    display_name: str = "Unknown"
    email: Optional[str] = None
    country: Optional[str] = None
    image: Optional[str] = None

    @classmethod
    def from_spotify(cls, payload: Dict[str, Any]) -> "UserProfile":
        return cls(
            id=payload["id"],
            display_name=payload.get("display_name") or "Unknown",
            email=payload.get("email"),
            country=payload.get("country"),
            image=best_image(payload.get("images"))
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            id=data["id"],
            display_name=data.get("display_name") or "Unknown",
            email=data.get("email"),
            country=data.get("country"),
            image=data.get("image")
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "email": self.email,
            "country": self.country,
            "image": self.image
        }


@dataclass
class PlayHistoryItem:
    """A recently played track with its play timestamp."""
    track: Track
    played_at: Optional[str] = None

    @classmethod
    def from_spotify(cls, payload: Dict[str, Any]) -> "PlayHistoryItem":
        return cls(
            track=Track.from_spotify(payload.get("track") or {}),
            played_at=payload.get("played_at")
        )


@dataclass
class SavedTrackItem:
    """A track from the user's library with the time it was saved."""
    track: Track
    added_at: Optional[str] = None

    @classmethod
    def from_spotify(cls, payload: Dict[str, Any]) -> "SavedTrackItem":
        return cls(
            track=Track.from_spotify(payload.get("track") or {}),
            added_at=payload.get("added_at")
        )


def _empty_windows() -> Dict[str, list]:
    return {time_range: [] for time_range in TIME_RANGES}


@dataclass
class ListeningProfile:
    """
    A user's collected listening history.

    The engine only ever reads it; the data collector is the sole writer.
    """
    user_id: str
    profile: Optional[UserProfile] = None
    top_tracks: Dict[str, List[Track]] = field(default_factory=_empty_windows)
    top_artists: Dict[str, List[ArtistRef]] = field(default_factory=_empty_windows)
    recently_played: List[PlayHistoryItem] = field(default_factory=list)
    saved_tracks: List[SavedTrackItem] = field(default_factory=list)
    top_genres: List[Tuple[str, int]] = field(default_factory=list)
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def known_track_ids(self) -> set:
        """Identifiers of every track that appears anywhere in the profile."""
        ids = set()
        for tracks in self.top_tracks.values():
            ids.update(track.id for track in tracks if track.id)
        ids.update(item.track.id for item in self.recently_played if item.track.id)
        ids.update(item.track.id for item in self.saved_tracks if item.track.id)
        return ids

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary for storage."""
        return {
            "user_id": self.user_id,
            "profile": self.profile.to_dict() if self.profile else None,
            "top_tracks": {
                window: [track.to_dict() for track in tracks]
                for window, tracks in self.top_tracks.items()
            },
            "top_artists": {
                window: [artist.to_dict() for artist in artists]
                for window, artists in self.top_artists.items()
            },
            "recently_played": [
                {"track": item.track.to_dict(), "played_at": item.played_at}
                for item in self.recently_played
            ],
            "saved_tracks": [
                {"track": item.track.to_dict(), "added_at": item.added_at}
                for item in self.saved_tracks
            ],
            "top_genres": [[genre, count] for genre, count in self.top_genres],
            "last_updated": self.last_updated.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListeningProfile":
        """Rebuild a profile from its stored dictionary form."""
        top_tracks = _empty_windows()
        for window, tracks in (data.get("top_tracks") or {}).items():
            top_tracks[window] = [Track.from_dict(t) for t in tracks]

        top_artists = _empty_windows()
        for window, artists in (data.get("top_artists") or {}).items():
            top_artists[window] = [ArtistRef.from_dict(a) for a in artists]

        last_updated = data.get("last_updated")
        if isinstance(last_updated, str):
            last_updated = datetime.fromisoformat(last_updated)

        profile = data.get("profile")
        return cls(
            user_id=data["user_id"],
            profile=UserProfile.from_dict(profile) if profile else None,
            top_tracks=top_tracks,
            top_artists=top_artists,
            recently_played=[
                PlayHistoryItem(track=Track.from_dict(item["track"]), played_at=item.get("played_at"))
                for item in data.get("recently_played") or []
            ],
            saved_tracks=[
                SavedTrackItem(track=Track.from_dict(item["track"]), added_at=item.get("added_at"))
                for item in data.get("saved_tracks") or []
            ],
            top_genres=[(genre, int(count)) for genre, count in data.get("top_genres") or []],
            last_updated=last_updated or datetime.now(timezone.utc)
        )


@dataclass
class ListeningAnalysis:
    """Genre preferences and artist diversity derived from a listening profile."""
    favorite_genres: Dict[str, int] = field(default_factory=dict)
    top_genres: List[Tuple[str, int]] = field(default_factory=list)
    artist_diversity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "favorite_genres": dict(self.favorite_genres),
            "top_genres": [[genre, count] for genre, count in self.top_genres],
            "artist_diversity": self.artist_diversity
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListeningAnalysis":
        return cls(
            favorite_genres=dict(data.get("favorite_genres") or {}),
            top_genres=[(genre, int(count)) for genre, count in data.get("top_genres") or []],
            artist_diversity=float(data.get("artist_diversity") or 0.0)
        )

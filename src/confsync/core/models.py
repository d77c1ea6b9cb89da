"""
Core data models for the conference content sync engine.

Entities are flat and reference each other by id. Documents arrive with
camelCase field names but are read case-insensitively; ``to_dict`` always
emits the canonical camelCase form.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple


def _lower_keys(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a copy of ``data`` keyed by lower-cased field name."""
    if not data:
        return {}
    if not isinstance(data, dict):
        raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
    return {str(k).lower(): v for k, v in data.items()}


def _str(data: Dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key.lower())
    return default if value is None else str(value)


def _opt_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key.lower())
    return None if value is None else str(value)


def _int(data: Dict[str, Any], key: str, default: int = 0) -> int:
    value = data.get(key.lower())
    return default if value is None else int(value)


def _bool(data: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = data.get(key.lower())
    return default if value is None else bool(value)


def _str_tuple(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = data.get(key.lower()) or []
    return tuple(str(v) for v in value)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive timestamps are assumed to be UTC. ``None`` and empty strings
    yield ``None``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    """Format a datetime the way the feed does (``...Z`` for UTC)."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class FetchKind(str, Enum):
    """Classification of a conditional fetch outcome."""
    UNCHANGED = "unchanged"
    FETCHED = "fetched"
    OFFLINE = "offline"
    TRANSIENT = "transient"
    HTTP_STATUS = "http_status"
    PARSE = "parse"
    DISABLED = "disabled"


class SyncState(str, Enum):
    """Lifecycle state of the content orchestrator."""
    EMPTY = "empty"
    LOADED = "loaded"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class ConferenceInfo:
    """Top-level facts about the event itself."""
    name: str = ""
    tz: str = "UTC"
    venue: str = ""
    address: str = ""
    start_date: str = ""
    end_date: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ConferenceInfo":
        d = _lower_keys(data)
        return cls(
            name=_str(d, "name"),
            tz=_str(d, "tz", "UTC"),
            venue=_str(d, "venue"),
            address=_str(d, "address"),
            start_date=_str(d, "startDate"),
            end_date=_str(d, "endDate"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tz": self.tz,
            "venue": self.venue,
            "address": self.address,
            "startDate": self.start_date,
            "endDate": self.end_date,
        }


@dataclass(frozen=True)
class ApiEndpoints:
    """Endpoints advertised by the feed for assets and follow-up calls."""
    base_url: str = ""
    assets_base_url: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ApiEndpoints":
        d = _lower_keys(data)
        return cls(
            base_url=_str(d, "baseUrl"),
            assets_base_url=_str(d, "assetsBaseUrl"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"baseUrl": self.base_url, "assetsBaseUrl": self.assets_base_url}


@dataclass(frozen=True)
class Session:
    """
    A scheduled talk or workshop.

    Only the durable, id-referencing fields live here. Resolved speakers,
    tracks, room and the favorite flag are computed by the hydrator and
    carried on ``HydratedSession``.
    """
    id: str
    title: str = ""
    abstract: str = ""
    level: str = ""
    tags: Tuple[str, ...] = ()
    start_utc: Optional[datetime] = None
    end_utc: Optional[datetime] = None
    day_index: int = 0
    track_ids: Tuple[str, ...] = ()
    speaker_ids: Tuple[str, ...] = ()
    room_id: str = ""
    capacity: int = 0
    is_live_stream: bool = False
    recording_url: Optional[str] = None
    live_url: Optional[str] = None
    is_workshop: bool = False
    requires_registration: bool = False
    image_urls: Tuple[str, ...] = ()
    last_updated: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        d = _lower_keys(data)
        return cls(
            id=_str(d, "id"),
            title=_str(d, "title"),
            abstract=_str(d, "abstract"),
            level=_str(d, "level"),
            tags=_str_tuple(d, "tags"),
            start_utc=parse_datetime(d.get("startutc")),
            end_utc=parse_datetime(d.get("endutc")),
            day_index=_int(d, "dayIndex"),
            track_ids=_str_tuple(d, "trackIds"),
            speaker_ids=_str_tuple(d, "speakerIds"),
            room_id=_str(d, "roomId"),
            capacity=_int(d, "capacity"),
            is_live_stream=_bool(d, "isLiveStream"),
            recording_url=_opt_str(d, "recordingUrl"),
            live_url=_opt_str(d, "liveUrl"),
            is_workshop=_bool(d, "isWorkshop"),
            requires_registration=_bool(d, "requiresRegistration"),
            image_urls=_str_tuple(d, "imageUrls"),
            last_updated=parse_datetime(d.get("lastupdated")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "abstract": self.abstract,
            "level": self.level,
            "tags": list(self.tags),
            "startUtc": format_datetime(self.start_utc),
            "endUtc": format_datetime(self.end_utc),
            "dayIndex": self.day_index,
            "trackIds": list(self.track_ids),
            "speakerIds": list(self.speaker_ids),
            "roomId": self.room_id,
            "capacity": self.capacity,
            "isLiveStream": self.is_live_stream,
            "recordingUrl": self.recording_url,
            "liveUrl": self.live_url,
            "isWorkshop": self.is_workshop,
            "requiresRegistration": self.requires_registration,
            "imageUrls": list(self.image_urls),
            "lastUpdated": format_datetime(self.last_updated),
        }


@dataclass(frozen=True)
class SpeakerSocials:
    twitter: Optional[str] = None
    mastodon: Optional[str] = None
    github: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SpeakerSocials":
        d = _lower_keys(data)
        return cls(
            twitter=_opt_str(d, "twitter"),
            mastodon=_opt_str(d, "mastodon"),
            github=_opt_str(d, "gitHub"),
            linkedin=_opt_str(d, "linkedIn"),
            website=_opt_str(d, "website"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "twitter": self.twitter,
            "mastodon": self.mastodon,
            "gitHub": self.github,
            "linkedIn": self.linkedin,
            "website": self.website,
        }


@dataclass(frozen=True)
class Speaker:
    """A presenter. Sessions are linked to speakers through ``Session.speaker_ids``."""
    id: str
    full_name: str = ""
    bio: str = ""
    company: str = ""
    job_title: str = ""
    socials: SpeakerSocials = field(default_factory=SpeakerSocials)
    headshot_url: str = ""
    tags: Tuple[str, ...] = ()
    last_updated: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Speaker":
        d = _lower_keys(data)
        return cls(
            id=_str(d, "id"),
            full_name=_str(d, "fullName"),
            bio=_str(d, "bio"),
            company=_str(d, "company"),
            job_title=_str(d, "jobTitle"),
            socials=SpeakerSocials.from_dict(d.get("socials")),
            headshot_url=_str(d, "headshotUrl"),
            tags=_str_tuple(d, "tags"),
            last_updated=parse_datetime(d.get("lastupdated")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fullName": self.full_name,
            "bio": self.bio,
            "company": self.company,
            "jobTitle": self.job_title,
            "socials": self.socials.to_dict(),
            "headshotUrl": self.headshot_url,
            "tags": list(self.tags),
            "lastUpdated": format_datetime(self.last_updated),
        }


@dataclass(frozen=True)
class Track:
    id: str
    name: str = ""
    color_hex: str = "#512BD4"
    description: str = ""
    order: int = 0
    icon_url: str = ""
    last_updated: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        d = _lower_keys(data)
        return cls(
            id=_str(d, "id"),
            name=_str(d, "name"),
            color_hex=_str(d, "colorHex", "#512BD4"),
            description=_str(d, "description"),
            order=_int(d, "order"),
            icon_url=_str(d, "iconUrl"),
            last_updated=parse_datetime(d.get("lastupdated")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "colorHex": self.color_hex,
            "description": self.description,
            "order": self.order,
            "iconUrl": self.icon_url,
            "lastUpdated": format_datetime(self.last_updated),
        }


@dataclass(frozen=True)
class MapCoordinates:
    lat: float = 0.0
    lon: float = 0.0
    level: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["MapCoordinates"]:
        if not data:
            return None
        d = _lower_keys(data)
        level = d.get("level")
        return cls(
            lat=float(d.get("lat") or 0.0),
            lon=float(d.get("lon") or 0.0),
            level=None if level is None else int(level),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"lat": self.lat, "lon": self.lon, "level": self.level}


@dataclass(frozen=True)
class Room:
    id: str
    name: str = ""
    building: str = ""
    floor: str = ""
    capacity: int = 0
    map_coordinates: Optional[MapCoordinates] = None
    indoor_map_image_url: str = ""
    last_updated: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Room":
        d = _lower_keys(data)
        return cls(
            id=_str(d, "id"),
            name=_str(d, "name"),
            building=_str(d, "building"),
            floor=_str(d, "floor"),
            capacity=_int(d, "capacity"),
            map_coordinates=MapCoordinates.from_dict(d.get("mapcoordinates")),
            indoor_map_image_url=_str(d, "indoorMapImageUrl"),
            last_updated=parse_datetime(d.get("lastupdated")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "building": self.building,
            "floor": self.floor,
            "capacity": self.capacity,
            "mapCoordinates": self.map_coordinates.to_dict() if self.map_coordinates else None,
            "indoorMapImageUrl": self.indoor_map_image_url,
            "lastUpdated": format_datetime(self.last_updated),
        }


@dataclass(frozen=True)
class Day:
    index: int
    date: str = ""
    tz: str = "UTC"
    friendly_name: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Day":
        d = _lower_keys(data)
        return cls(
            index=_int(d, "index"),
            date=_str(d, "date"),
            tz=_str(d, "tz", "UTC"),
            friendly_name=_str(d, "friendlyName"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "date": self.date,
            "tz": self.tz,
            "friendlyName": self.friendly_name,
        }


@dataclass(frozen=True)
class Sponsor:
    id: str
    name: str = ""
    tier: str = ""
    logo_url: str = ""
    website: str = ""
    blurb: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Sponsor":
        d = _lower_keys(data)
        return cls(
            id=_str(d, "id"),
            name=_str(d, "name"),
            tier=_str(d, "tier"),
            logo_url=_str(d, "logoUrl"),
            website=_str(d, "website"),
            blurb=_str(d, "blurb"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tier": self.tier,
            "logoUrl": self.logo_url,
            "website": self.website,
            "blurb": self.blurb,
        }


def _entities(data: Dict[str, Any], key: str, factory) -> tuple:
    items = data.get(key.lower()) or []
    if not isinstance(items, list):
        raise TypeError(f"Field '{key}' must be a list")
    for item in items:
        if not isinstance(item, dict):
            raise TypeError(f"Entries of '{key}' must be objects, got {type(item).__name__}")
    return tuple(factory(item) for item in items)


@dataclass(frozen=True)
class ContentSnapshot:
    """
    One complete, immutable bundle of conference content.

    Attributes:
        schema_version: Document schema version
        content_version: Version string used by the version gate
        generated_at_utc: When the feed was produced
        min_app_version: Oldest client the feed supports
        conference: Event information
        api: Advertised endpoints
        sessions/speakers/tracks/rooms/days/sponsors: Flat entity collections
    """
    schema_version: str = "1.0.0"
    content_version: str = "1"
    generated_at_utc: Optional[datetime] = None
    min_app_version: str = "1.0"
    conference: ConferenceInfo = field(default_factory=ConferenceInfo)
    api: ApiEndpoints = field(default_factory=ApiEndpoints)
    sessions: Tuple[Session, ...] = ()
    speakers: Tuple[Speaker, ...] = ()
    tracks: Tuple[Track, ...] = ()
    rooms: Tuple[Room, ...] = ()
    days: Tuple[Day, ...] = ()
    sponsors: Tuple[Sponsor, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentSnapshot":
        """
        Build a snapshot from a decoded feed document.

        Raises:
            TypeError/ValueError: If the document is not shaped like a feed
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
        d = _lower_keys(data)
        return cls(
            schema_version=_str(d, "schemaVersion", "1.0.0"),
            content_version=_str(d, "contentVersion", "1"),
            generated_at_utc=parse_datetime(d.get("generatedatutc") or d.get("generatedat")),
            min_app_version=_str(d, "minAppVersion", "1.0"),
            conference=ConferenceInfo.from_dict(d.get("conference")),
            api=ApiEndpoints.from_dict(d.get("api")),
            sessions=_entities(d, "sessions", Session.from_dict),
            speakers=_entities(d, "speakers", Speaker.from_dict),
            tracks=_entities(d, "tracks", Track.from_dict),
            rooms=_entities(d, "rooms", Room.from_dict),
            days=_entities(d, "days", Day.from_dict),
            sponsors=_entities(d, "sponsors", Sponsor.from_dict),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "contentVersion": self.content_version,
            "generatedAtUtc": format_datetime(self.generated_at_utc),
            "minAppVersion": self.min_app_version,
            "conference": self.conference.to_dict(),
            "api": self.api.to_dict(),
            "sessions": [s.to_dict() for s in self.sessions],
            "speakers": [s.to_dict() for s in self.speakers],
            "tracks": [t.to_dict() for t in self.tracks],
            "rooms": [r.to_dict() for r in self.rooms],
            "days": [d.to_dict() for d in self.days],
            "sponsors": [s.to_dict() for s in self.sponsors],
        }


@dataclass(frozen=True)
class CacheMetadata:
    """Side-channel metadata kept next to a cached document."""
    version: Optional[str] = None
    validator: Optional[str] = None


@dataclass(frozen=True)
class FeatureFlagSet:
    """
    Remote-controlled feature switches.

    Every document key other than ``version`` and ``eTag`` holding a JSON
    boolean is a flag, kept under its document name. Other values are ignored.
    """
    version: str = "1.0"
    etag: Optional[str] = None
    flags: Dict[str, bool] = field(default_factory=dict)

    @classmethod
    def create_default(cls) -> "FeatureFlagSet":
        return cls(version="1.0", flags={"sessionFeedbackEnabled": False})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureFlagSet":
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
        version = "1.0"
        etag = None
        flags: Dict[str, bool] = {}
        for key, value in data.items():
            lowered = str(key).lower()
            if lowered == "version":
                version = str(value)
            elif lowered == "etag":
                etag = None if value is None else str(value)
            elif isinstance(value, bool):
                flags[str(key)] = value
        return cls(version=version, etag=etag, flags=flags)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"version": self.version, "eTag": self.etag}
        out.update(self.flags)
        return out

    def find_flag(self, name: str) -> Optional[str]:
        """Return the stored spelling of ``name`` (case-insensitive), if known."""
        lowered = name.lower()
        for key in self.flags:
            if key.lower() == lowered:
                return key
        return None

    def is_enabled(self, name: str, default: bool = False) -> bool:
        key = self.find_flag(name)
        return self.flags[key] if key is not None else default

    def with_flag(self, name: str, value: bool) -> "FeatureFlagSet":
        flags = dict(self.flags)
        flags[name] = bool(value)
        return replace(self, flags=flags)

    def with_etag(self, etag: Optional[str]) -> "FeatureFlagSet":
        return replace(self, etag=etag)


@dataclass(frozen=True)
class FetchOutcome:
    """
    Result of a conditional fetch.

    Attributes:
        kind: Outcome classification
        payload: Decoded document (only for FETCHED)
        validator: Validator to remember (new one for FETCHED, prior one for UNCHANGED)
        reason: Failure description (only for failure kinds)
        status_code: HTTP status if a response was received
        attempts: Number of HTTP attempts made
    """
    kind: FetchKind
    payload: Any = None
    validator: Optional[str] = None
    reason: Optional[str] = None
    status_code: Optional[int] = None
    attempts: int = 0

    @classmethod
    def unchanged(cls, validator: Optional[str] = None, attempts: int = 1) -> "FetchOutcome":
        return cls(kind=FetchKind.UNCHANGED, validator=validator, status_code=304, attempts=attempts)

    @classmethod
    def fetched(
        cls,
        payload: Any,
        validator: Optional[str] = None,
        status_code: int = 200,
        attempts: int = 1,
    ) -> "FetchOutcome":
        return cls(
            kind=FetchKind.FETCHED,
            payload=payload,
            validator=validator,
            status_code=status_code,
            attempts=attempts,
        )

    @classmethod
    def failed(
        cls,
        reason: str,
        kind: FetchKind = FetchKind.TRANSIENT,
        status_code: Optional[int] = None,
        attempts: int = 0,
    ) -> "FetchOutcome":
        return cls(kind=kind, reason=reason, status_code=status_code, attempts=attempts)

    @property
    def is_unchanged(self) -> bool:
        return self.kind == FetchKind.UNCHANGED

    @property
    def is_fetched(self) -> bool:
        return self.kind == FetchKind.FETCHED

    @property
    def is_failed(self) -> bool:
        return self.kind not in (FetchKind.UNCHANGED, FetchKind.FETCHED)


def index_by_id(entities: Iterable[Any]) -> Dict[str, Any]:
    """Build an id → entity map. Later duplicates win."""
    return {entity.id: entity for entity in entities}

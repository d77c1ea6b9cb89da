"""
Relational hydration of a flat content snapshot.

Turns id references into resolved objects and overlays the favorite set.
Speaker back-references are kept as id lists and resolved on demand, so no
two objects ever point at each other.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AbstractSet, Dict, List, Optional

from ..core.models import ContentSnapshot, Room, Session, Speaker, Track, index_by_id


logger = logging.getLogger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def start_time_key(session) -> datetime:
    """Sort key putting sessions without a start time first."""
    return session.start_utc or _EARLIEST


@dataclass
class HydratedSession:
    """
    A session with its references resolved.

    ``is_favorite`` is the only field updated after hydration, and only by
    the favorites store.
    """
    session: Session
    speakers: List[Speaker] = field(default_factory=list)
    tracks: List[Track] = field(default_factory=list)
    room: Optional[Room] = None
    is_favorite: bool = False

    @property
    def id(self) -> str:
        return self.session.id

    @property
    def title(self) -> str:
        return self.session.title

    @property
    def start_utc(self) -> Optional[datetime]:
        return self.session.start_utc

    @property
    def end_utc(self) -> Optional[datetime]:
        return self.session.end_utc

    @property
    def day_index(self) -> int:
        return self.session.day_index


@dataclass
class HydratedGraph:
    """
    Derived view over one snapshot.

    Attributes:
        snapshot: The source snapshot
        sessions: Hydrated sessions keyed by id, in snapshot order
        speakers: Speakers keyed by id
        tracks: Tracks keyed by id
        rooms: Rooms keyed by id
        speaker_session_ids: speaker id -> ids of sessions mentioning it
    """
    snapshot: ContentSnapshot
    sessions: Dict[str, HydratedSession]
    speakers: Dict[str, Speaker]
    tracks: Dict[str, Track]
    rooms: Dict[str, Room]
    speaker_session_ids: Dict[str, List[str]]

    @property
    def content_version(self) -> str:
        return self.snapshot.content_version

    def session_list(self) -> List[HydratedSession]:
        return list(self.sessions.values())

    def get_session(self, session_id: str) -> Optional[HydratedSession]:
        return self.sessions.get(session_id)

    def sessions_for_speaker(self, speaker_id: str) -> List[HydratedSession]:
        return [
            self.sessions[session_id]
            for session_id in self.speaker_session_ids.get(speaker_id, [])
            if session_id in self.sessions
        ]

    def set_favorite(self, session_id: str, value: bool) -> bool:
        """
        Patch the favorite flag of one session in place.

        Returns:
            True if the session exists in this graph
        """
        hydrated = self.sessions.get(session_id)
        if hydrated is None:
            return False
        hydrated.is_favorite = value
        return True


def hydrate(snapshot: ContentSnapshot, favorite_ids: AbstractSet[str]) -> HydratedGraph:
    """
    Build the derived graph for ``snapshot``.

    Dangling speaker, track and room ids are dropped without error. The
    result depends only on the arguments.

    Args:
        snapshot: Flat content snapshot
        favorite_ids: Ids of favorited sessions

    Returns:
        HydratedGraph for the snapshot
    """
    speakers = index_by_id(snapshot.speakers)
    tracks = index_by_id(snapshot.tracks)
    rooms = index_by_id(snapshot.rooms)

    sessions: Dict[str, HydratedSession] = {}
    dropped = 0
    for session in snapshot.sessions:
        resolved_speakers = [speakers[i] for i in session.speaker_ids if i in speakers]
        resolved_tracks = [tracks[i] for i in session.track_ids if i in tracks]
        dropped += len(session.speaker_ids) - len(resolved_speakers)
        dropped += len(session.track_ids) - len(resolved_tracks)
        room = rooms.get(session.room_id) if session.room_id else None
        if session.room_id and room is None:
            dropped += 1

        sessions[session.id] = HydratedSession(
            session=session,
            speakers=resolved_speakers,
            tracks=resolved_tracks,
            room=room,
            is_favorite=session.id in favorite_ids,
        )

    speaker_session_ids: Dict[str, List[str]] = {speaker_id: [] for speaker_id in speakers}
    for session in snapshot.sessions:
        for speaker_id in session.speaker_ids:
            bucket = speaker_session_ids.get(speaker_id)
            if bucket is not None and session.id not in bucket:
                bucket.append(session.id)

    if dropped:
        logger.debug(f"Hydration dropped {dropped} dangling references")

    return HydratedGraph(
        snapshot=snapshot,
        sessions=sessions,
        speakers=speakers,
        tracks=tracks,
        rooms=rooms,
        speaker_session_ids=speaker_session_ids,
    )

"""
Channel-info collaborators.

The messaging platform itself is reached by an external provider; this
module only defines the contract and a snapshot-file implementation used
for development and by the CLI.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import NotFound, Unauthenticated, UpstreamError
from ..models import ChannelProfile
from ..normalize import handle_key, normalize_handle


class ChannelInfoProvider:
    """Resolves a channel handle to a ChannelProfile."""

    def resolve(self, handle: str, session: Optional[str]) -> ChannelProfile:
        """
        Raises:
            NotFound: Handle does not resolve to a channel
            Unauthenticated: Session token missing, invalid or expired
        """
        raise NotImplementedError


def _require_session(session: Optional[str]) -> None:
    if not session or not session.strip():
        raise Unauthenticated("A messaging session is required for channel info requests")


class StaticChannelProvider(ChannelInfoProvider):
    """Serves channel payloads from a dict keyed by handle."""

    def __init__(self, channels: Dict[str, Dict[str, Any]], valid_sessions: Optional[set] = None):
        self._channels = {handle_key(k): v for k, v in channels.items()}
        self._valid_sessions = valid_sessions

    def resolve(self, handle: str, session: Optional[str]) -> ChannelProfile:
        _require_session(session)
        if self._valid_sessions is not None and session not in self._valid_sessions:
            raise Unauthenticated("Messaging session is invalid or expired")

        clean = normalize_handle(handle)
        if not clean:
            raise NotFound("Channel username is required")
        payload = self._channels.get(clean.lower())
        if payload is None:
            raise NotFound(f"No channel found for \"{clean}\"")
        return ChannelProfile.from_payload(dict({"username": clean}, **payload))


class FileChannelProvider(StaticChannelProvider):
    """
    Reads ``{"channels": {handle: {title, username, postCount, participantsCount}}}``
    from a JSON snapshot file.
    """

    def __init__(self, path: Path, valid_sessions: Optional[set] = None):
        self.path = path
        super().__init__(self._load(path), valid_sessions)

    @staticmethod
    def _load(path: Path) -> Dict[str, Dict[str, Any]]:
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as f:
                content = f.read().strip()
        except IOError as e:
            raise UpstreamError(f"Cannot read channel snapshot {path}: {e}")
        if not content:
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise UpstreamError(f"Channel snapshot {path} is not valid JSON: {e}")
        channels = data.get("channels") if isinstance(data, dict) else None
        if not isinstance(channels, dict):
            raise UpstreamError(f"Channel snapshot {path} has no 'channels' object")
        return channels

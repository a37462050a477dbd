"""
Daily.co REST client for private 1:1 video rooms.
"""
import logging
import time
from typing import Optional, Dict, Any

import requests

logger = logging.getLogger(__name__)


class VideoRoomError(Exception):
    pass


class DailyClient:
    """
    Wrapper for the Daily.co rooms API
    """

    def __init__(self, api_key: Optional[str], api_url: str = "https://api.daily.co/v1", timeout: float = 10.0):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(
            config.get("DAILY_API_KEY"),
            config.get("DAILY_API_BASE", "https://api.daily.co/v1"),
            config.get("DAILY_TIMEOUT_SECONDS", 10),
        )

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise VideoRoomError("Daily.co API key not configured")
        try:
            response = requests.post(
                f"{self.api_url}{path}", json=payload, headers=self.headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise VideoRoomError(f"Daily.co request failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                detail = response.json().get("error") or response.reason
            except ValueError:
                detail = response.reason
            raise VideoRoomError(f"Daily.co {path} failed ({response.status_code}): {detail}")
        return response.json()

    def create_room(self, name: str, expires_at: Optional[int] = None, max_participants: int = 2) -> Dict[str, Any]:
        """
        Create a private room.

        Args:
            name: Room name, unique per booking
            expires_at: Unix timestamp after which the room is deleted (default: 24h from now)
            max_participants: 1:1 sessions by default

        Returns:
            Room payload including ``name`` and ``url``
        """
        payload = {
            "name": name,
            "privacy": "private",
            "properties": {
                "enable_recording": False,
                "enable_screenshare": True,
                "enable_chat": True,
                "enable_prejoin_ui": True,
                "enable_knocking": False,
                "max_participants": max_participants,
                "exp": expires_at or int(time.time()) + 86400,
            },
        }
        room = self._post("/rooms", payload)
        logger.info("Created Daily.co room %s", room.get("name"))
        return room


def room_name_for_booking(booking_id) -> str:
    return f"fynly-booking-{booking_id}"

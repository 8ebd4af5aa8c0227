# app/utils/zoom_service.py
import logging
from datetime import datetime
from typing import Dict, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import UpstreamError
from app.utils.time import duration_minutes

logger = logging.getLogger(__name__)


class ZoomMeetingService:
    """Provision scheduled Zoom meetings with server-to-server OAuth"""

    def __init__(
        self,
        account_id: str,
        client_id: str,
        client_secret: str,
        oauth_url: str = "https://zoom.us/oauth/token",
        api_url: str = "https://api.zoom.us/v2",
        timezone: str = "Asia/Kolkata",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_id = account_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.oauth_url = oauth_url
        self.api_url = api_url.rstrip("/")
        self.timezone = timezone
        self.transport = transport

    async def _get_access_token(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            self.oauth_url,
            data={"grant_type": "account_credentials", "account_id": self.account_id},
            auth=(self.client_id, self.client_secret),
        )
        response.raise_for_status()
        return response.json()["access_token"]

    async def create_meeting(
        self, title: str, start_time: datetime, end_time: datetime
    ) -> Dict[str, str]:
        """
        Create a scheduled meeting.

        Returns:
            Dict with meeting_id, join_link and password
        """
        body = {
            "topic": title,
            "type": 2,  # scheduled meeting
            "start_time": start_time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "duration": duration_minutes(start_time, end_time),
            "timezone": self.timezone,
            "settings": {
                "host_video": True,
                "participant_video": True,
                "join_before_host": False,
                "mute_upon_entry": True,
                "waiting_room": True,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=15, transport=self.transport) as client:
                token = await self._get_access_token(client)
                response = await client.post(
                    f"{self.api_url}/users/me/meetings",
                    json=body,
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, KeyError) as e:
            logger.error(f"Failed to create Zoom meeting '{title}': {e}")
            raise UpstreamError("Failed to create Zoom meeting")

        logger.info(f"Zoom meeting {data.get('id')} created for '{title}'")
        return {
            "meeting_id": str(data["id"]),
            "join_link": data.get("join_url"),
            "password": data.get("password"),
        }


zoom_service = ZoomMeetingService(
    account_id=settings.zoom_account_id,
    client_id=settings.zoom_client_id,
    client_secret=settings.zoom_client_secret,
    oauth_url=settings.zoom_oauth_url,
    api_url=settings.zoom_api_url,
    timezone=settings.zoom_timezone,
)

# videocalls/daily.py
"""
Daily.co REST client.

Rooms are created with the provider's own pre-join screen and knocking turned
off: patients are let in by the doctor through our waiting room, not by Daily.
"""
import logging
from dataclasses import dataclass, field

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)

API_KEY_MISSING = "Daily.co API key not configured"


class DailyError(Exception):
    """Base class for Daily.co client failures."""


class DailyConfigurationError(DailyError):
    """The client has no API key; no request was attempted."""


class DailyAPIError(DailyError):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class DailyRoom:
    name: str
    url: str = ''
    id: str = ''
    config: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data):
        return cls(
            name=data['name'],
            url=data.get('url') or room_url(data['name']),
            id=data.get('id', ''),
            config=data.get('config', {}),
        )


def room_url(name):
    return f"https://{settings.DAILY_DOMAIN}/{name}"


def room_properties(expiration=None):
    properties = {
        'enable_prejoin_ui': False,
        'enable_knocking': False,
        'enable_screenshare': True,
        'enable_chat': False,  # Consultations use our own chat
    }
    if expiration:
        properties['exp'] = int(expiration)
    return properties


class DailyClient:
    def __init__(self, api_key=None, api_url=None, timeout=None, transport=None):
        self.api_key = settings.DAILY_API_KEY if api_key is None else api_key
        self.api_url = (api_url or settings.DAILY_API_URL).rstrip('/')
        self.timeout = timeout or settings.EXTERNAL_API_TIMEOUT
        self.transport = transport

    async def _request(self, method, path, action, payload=None):
        if not self.api_key:
            logger.error(f"[DailyClient] Cannot {action}: {API_KEY_MISSING}.")
            raise DailyConfigurationError(API_KEY_MISSING)

        headers = {'Authorization': f'Bearer {self.api_key}'}
        try:
            async with httpx.AsyncClient(base_url=self.api_url, headers=headers,
                                         timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"[DailyClient] Request to {path} failed: {e}", exc_info=True)
            raise DailyAPIError(f"Failed to {action}: {e}")

        if not response.is_success:
            logger.warning(f"[DailyClient] {method} {path} returned {response.status_code}: {response.text}")
            raise DailyAPIError(f"Failed to {action}: {response.text}", status_code=response.status_code)
        return response

    async def create_room(self, name, expiration=None):
        payload = {
            'name': name,
            'privacy': 'private',
            'properties': room_properties(expiration),
        }
        response = await self._request('POST', '/rooms', 'create room', payload)
        room = DailyRoom.from_api(response.json())
        logger.info(f"[DailyClient] Created room {room.name}.")
        return room

    async def get_room(self, name):
        response = await self._request('GET', f'/rooms/{name}', 'get room')
        return DailyRoom.from_api(response.json())

    async def delete_room(self, name):
        await self._request('DELETE', f'/rooms/{name}', 'delete room')
        logger.info(f"[DailyClient] Deleted room {name}.")

    async def get_token(self, room_name, user_id, is_owner=False):
        """Meeting token for ``user_id``; owners (the doctor) get elevated room privileges."""
        payload = {
            'properties': {
                'room_name': room_name,
                'is_owner': is_owner,
                'user_id': str(user_id),
            }
        }
        response = await self._request('POST', '/meeting-tokens', 'get token', payload)
        return response.json()['token']


def get_daily_client():
    return DailyClient()

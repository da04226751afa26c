import json

import httpx

from videocalls.daily import DailyClient


class FakeDailyAPI:
    """In-memory stand-in for the Daily.co REST API, used as an httpx transport."""

    def __init__(self, domain='test.daily.co'):
        self.domain = domain
        self.rooms = {}
        self.tokens = []
        self.requests = []
        self.fail_with = None
        self.omit_url = False

    def __call__(self, request):
        self.requests.append(request)
        if self.fail_with is not None:
            status, text = self.fail_with
            return httpx.Response(status, text=text)

        path = request.url.path.removeprefix('/v1')
        if request.method == 'POST' and path == '/rooms':
            body = json.loads(request.content)
            room = {
                'id': f"room-{len(self.rooms) + 1}",
                'name': body['name'],
                'url': f"https://{self.domain}/{body['name']}",
                'privacy': body['privacy'],
                'config': body['properties'],
            }
            if self.omit_url:
                del room['url']
            self.rooms[body['name']] = room
            return httpx.Response(200, json=room)
        if request.method == 'POST' and path == '/meeting-tokens':
            properties = json.loads(request.content)['properties']
            self.tokens.append(properties)
            return httpx.Response(200, json={'token': f"tok-{properties['user_id']}-{properties['is_owner']}"})
        if path.startswith('/rooms/'):
            name = path.split('/', 2)[2]
            if name not in self.rooms:
                return httpx.Response(404, text='{"error":"not-found"}')
            if request.method == 'GET':
                return httpx.Response(200, json=self.rooms[name])
            if request.method == 'DELETE':
                del self.rooms[name]
                return httpx.Response(200, json={'deleted': True, 'name': name})
        return httpx.Response(405, text='unsupported')

    def client(self, api_key='test-key'):
        return DailyClient(api_key=api_key, api_url='https://api.daily.co/v1', transport=httpx.MockTransport(self))

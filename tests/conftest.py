
class FakeResponse:
    def __init__(self, status, body=""):
        self.status = status
        self.body = body

    async def text(self):
        return self.body


class FakeRequest:
    def __init__(self, session, url):
        self.session = session
        self.url = url

    async def __aenter__(self):
        self.session.requested.append(self.url)
        reply = self.session.routes.get(self.url, self.session.default)
        if callable(reply):
            reply = reply(self.url)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return FakeResponse(reply)
        return reply

    async def __aexit__(self, *exc_info):
        return False


class FakeSession:
    """Stands in for the shared aiohttp session; answers from a url -> reply table."""

    def __init__(self, routes=None, default=404):
        self.routes = dict(routes or {})
        self.default = default
        self.requested = []

    def get(self, url, **kwargs):
        return FakeRequest(self, url)

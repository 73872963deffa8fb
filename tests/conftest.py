import json

import pytest
import requests


def make_response(body=b"", status_code=200, url="https://example.org/"):
    """Build a real requests.Response carrying `body` (bytes, str or JSON-able)."""
    response = requests.models.Response()
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")
    response._content = body
    response._content_consumed = True
    response.status_code = status_code
    response.url = url
    response.encoding = "utf-8"
    response.reason = "OK" if status_code < 400 else "Error"
    return response


class FakeAPI:
    """Stand-in for requests.request returning queued responses and recording calls."""

    def __init__(self):
        self.calls = []
        self._queue = []

    def add(self, body=b"", status_code=200):
        self._queue.append((body, status_code))
        return self

    def add_error(self, exc):
        self._queue.append(exc)
        return self

    def add_response(self, response):
        self._queue.append(response)
        return self

    def __call__(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self._queue:
            raise AssertionError(f"Unexpected request: {method} {url}")
        item = self._queue.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, requests.Response):
            return item
        body, status_code = item
        return make_response(body, status_code, url)


@pytest.fixture
def fake_api(monkeypatch):
    api = FakeAPI()
    monkeypatch.setattr(requests, "request", api)
    monkeypatch.setattr("time.sleep", lambda seconds: None)
    return api

import json

import pytest
import requests

from field_tracker.errors import (
    FetchError,
    TrackerAPIError,
    TrackerPermissionError,
)
from field_tracker.tracker_client import TrackerClient
from field_tracker.tracker_client.response_handling import extract_error
from field_tracker.tracker_client.session import create_default_session


class FakeResp:
    """Minimal fake response matching needed parts of requests.Response."""

    def __init__(self, status_code=200, data=None, body=None):
        self.status_code = status_code
        self._data = data
        self._body = body

    def json(self):
        return json.loads(self.text)

    @property
    def text(self):
        if self._body is not None:
            return self._body
        if self._data is None:
            return ""
        return json.dumps(self._data)

    @property
    def content(self):
        return self.text.encode()


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.urls = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(*responses):
    session = FakeSession(*responses)
    return TrackerClient("http://tracker.test/api/", session=session), session


def test_latest_location_payload_and_url():
    client, session = _client(FakeResp(200, {"lat": 1.0, "lon": 2.0}))
    assert client.fetch_latest_location("esp01") == {"lat": 1.0, "lon": 2.0}
    assert session.urls == ["http://tracker.test/api/location/latest/esp01"]


def test_device_id_is_url_quoted():
    client, session = _client(FakeResp(200, []))
    client.fetch_history("unit 7/a")
    assert session.urls == ["http://tracker.test/api/location/history/unit%207%2Fa"]


@pytest.mark.parametrize(
    "response",
    [FakeResp(404, {"error": "no such device"}), FakeResp(204), FakeResp(200)],
)
def test_missing_data_maps_to_empty(response):
    client, _ = _client(response)
    assert client.fetch_latest_location("esp01") is None
    client, _ = _client(response)
    assert client.fetch_history("esp01") == []


def test_history_unwraps_envelope():
    points = [{"lat": 1, "lon": 2, "ts": 3}]
    client, _ = _client(FakeResp(200, {"history": points}), FakeResp(200, {"points": points}))
    assert client.fetch_history("esp01") == points
    assert client.fetch_history("esp01") == points


def test_unexpected_payload_types_raise():
    client, _ = _client(FakeResp(200, {"count": 3}), FakeResp(200, [1, 2]))
    with pytest.raises(FetchError, match="unexpected type"):
        client.fetch_history("esp01")
    with pytest.raises(FetchError, match="unexpected type"):
        client.fetch_latest_location("esp01")


def test_server_error_carries_backend_detail():
    client, _ = _client(FakeResp(500, {"error": "db down", "detail": "retry later"}))
    with pytest.raises(TrackerAPIError) as excinfo:
        client.fetch_history("esp01")
    message = str(excinfo.value)
    assert "status 500" in message
    assert "db down | retry later" in message


def test_forbidden_maps_to_permission_error():
    client, _ = _client(FakeResp(403, body="forbidden"))
    with pytest.raises(TrackerPermissionError, match="forbidden"):
        client.fetch_latest_location("esp01")


def test_transport_failure_becomes_fetch_error():
    client, _ = _client(requests.exceptions.ConnectionError("refused"))
    with pytest.raises(FetchError, match="refused"):
        client.fetch_history("esp01")


def test_invalid_json_becomes_fetch_error():
    client, _ = _client(FakeResp(200, body="<html>"))
    with pytest.raises(FetchError, match="invalid JSON"):
        client.fetch_latest_location("esp01")


def test_extract_error_truncates_long_text():
    resp = FakeResp(502, body="x" * 400)
    detail = extract_error(resp)
    assert detail is not None
    assert len(detail) == 300
    assert detail.endswith("...")
    assert extract_error(None) is None


def test_extract_error_reads_errors_list():
    resp = FakeResp(422, {"message": "invalid", "errors": [{"message": "bad id"}, "x"]})
    assert extract_error(resp) == "invalid | bad id | x"


def test_default_session_configuration():
    session = create_default_session(max_retries=1)
    adapter = session.get_adapter("http://tracker.test/")
    assert adapter.max_retries.total == 1
    assert 503 in adapter.max_retries.status_forcelist
    assert session.headers["Accept"] == "application/json"

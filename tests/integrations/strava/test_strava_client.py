import httpx
import pytest

from runlog.integrations.strava.client import StravaClient

ACTIVITY = {
    "id": 987,
    "name": "Morning Run",
    "type": "Run",
    "start_date": "2024-03-12T06:30:00Z",
    "start_date_local": "2024-03-12T07:30:00Z",
    "moving_time": 1500,
    "elapsed_time": 1560,
    "distance": 5000.0,
    "average_heartrate": 151.4,
    "kudos_count": 3,
}


def test_fetch_activity_sends_token_and_keeps_raw(monkeypatch):
    calls = []

    def mock_get(url, headers=None, timeout=None, **kwargs):
        calls.append((url, headers, timeout))
        return httpx.Response(200, json=ACTIVITY, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx, "get", mock_get)

    client = StravaClient(access_token="token-1", base_url="https://strava.test/api/v3/", timeout=5.0)
    activity = client.fetch_activity(987)

    assert calls == [("https://strava.test/api/v3/activities/987", {"Authorization": "Bearer token-1"}, 5.0)]
    assert activity.id == 987
    assert activity.moving_time == 1500
    assert activity.raw["kudos_count"] == 3


def test_fetch_laps_handles_empty_response(monkeypatch):
    def mock_get(url, *args, **kwargs):
        return httpx.Response(200, json=[], request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx, "get", mock_get)

    client = StravaClient(access_token="x", base_url="https://strava.test/api/v3")

    assert client.fetch_activity_laps(987) == []


def test_fetch_laps(monkeypatch):
    laps = [
        {"id": 1, "lap_index": 1, "elapsed_time": 300, "distance": 1000.0, "average_heartrate": 150.0},
        {"id": 2, "lap_index": 2, "elapsed_time": 290, "distance": 1000.0},
    ]

    def mock_get(url, *args, **kwargs):
        return httpx.Response(200, json=laps, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx, "get", mock_get)

    result = StravaClient(access_token="x", base_url="https://strava.test/api/v3").fetch_activity_laps(987)

    assert [lap.elapsed_time for lap in result] == [300, 290]
    assert result[1].average_heartrate is None


def test_http_errors_are_raised(monkeypatch):
    def mock_get(url, *args, **kwargs):
        return httpx.Response(404, json={"message": "Record Not Found"}, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx, "get", mock_get)

    client = StravaClient(access_token="x", base_url="https://strava.test/api/v3")

    with pytest.raises(httpx.HTTPStatusError):
        client.fetch_activity(1)

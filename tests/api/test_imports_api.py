"""Tests for the file import endpoints.

Tests cover:
- TCX upload returning session fields and detected intervals
- Interval CSV upload returning interval details and totals
- Training log upload returning parsed sessions
- Extension, emptiness, size and parse errors
"""

import json

from runlog.api import imports

TCX = """<?xml version="1.0" encoding="UTF-8"?>
<TrainingCenterDatabase xmlns="http://www.garmin.com/xmlschemas/TrainingCenterDatabase/v2">
  <Activities>
    <Activity Sport="Running">
      <Id>2024-03-12T07:30:00Z</Id>
      <Lap StartTime="2024-03-12T07:30:00Z"><TotalTimeSeconds>600</TotalTimeSeconds><DistanceMeters>2000</DistanceMeters></Lap>
      <Lap StartTime="2024-03-12T07:40:00Z"><TotalTimeSeconds>80</TotalTimeSeconds><DistanceMeters>400</DistanceMeters></Lap>
      <Lap StartTime="2024-03-12T07:41:20Z"><TotalTimeSeconds>90</TotalTimeSeconds><DistanceMeters>200</DistanceMeters></Lap>
      <Lap StartTime="2024-03-12T07:42:50Z"><TotalTimeSeconds>80</TotalTimeSeconds><DistanceMeters>400</DistanceMeters></Lap>
      <Lap StartTime="2024-03-12T07:44:10Z"><TotalTimeSeconds>600</TotalTimeSeconds><DistanceMeters>2000</DistanceMeters></Lap>
    </Activity>
  </Activities>
</TrainingCenterDatabase>
"""

INTERVAL_CSV = """Step Type,Duration,Distance,Avg Pace,Avg HR
Warm Up,10:00,2.0,5:00,130
Run,4:00,1.0,4:00,170
Rest,2:00,0.3,6:40,140
Run,4:00,1.0,4:00,172
Rest,6:00,1.0,6:00,130
"""


def _upload(client, path: str, filename: str, content: str | bytes):
    if isinstance(content, str):
        content = content.encode("utf-8")
    return client.post(path, files={"file": (filename, content, "application/octet-stream")})


class TestTcxImport:
    def test_tcx_upload(self, client):
        response = _upload(client, "/import/tcx", "run.tcx", TCX)

        assert response.status_code == 200
        body = response.json()
        assert body["lap_count"] == 5
        assert body["is_interval"] is True
        assert body["interval_details"]["repetition_count"] == 2
        assert body["session"]["date"] == "2024-03-12"
        assert body["session"]["distance"] == 5.0
        assert body["session"]["duration"] == "00:24:10"

    def test_wrong_extension(self, client):
        response = _upload(client, "/import/tcx", "run.gpx", TCX)

        assert response.status_code == 400
        assert "Invalid file type" in response.json()["detail"]

    def test_empty_file(self, client):
        response = _upload(client, "/import/tcx", "run.tcx", b"")

        assert response.status_code == 400
        assert response.json()["detail"] == "File is empty"

    def test_invalid_xml(self, client):
        response = _upload(client, "/import/tcx", "run.tcx", "<TrainingCenterDatabase>")

        assert response.status_code == 422
        assert "Failed to parse TCX" in response.json()["detail"]

    def test_file_too_large(self, client, monkeypatch):
        monkeypatch.setattr(imports, "MAX_FILE_SIZE", 100)

        response = _upload(client, "/import/tcx", "run.tcx", TCX)

        assert response.status_code == 413


class TestIntervalCsvImport:
    def test_interval_csv_upload(self, client):
        response = _upload(client, "/import/interval-csv", "intervals.csv", INTERVAL_CSV)

        assert response.status_code == 200
        body = response.json()
        assert body["repetition_count"] == 2
        assert body["total_duration"] == "26:00"
        assert body["total_distance"] == 5.3
        assert body["avg_heart_rate"] == 143
        assert [s["step_type"] for s in body["interval_details"]["steps"]] == [
            "warmup",
            "effort",
            "recovery",
            "effort",
            "cooldown",
        ]

    def test_header_only(self, client):
        response = _upload(client, "/import/interval-csv", "intervals.csv", "Step Type,Duration\n")
        assert response.status_code == 422


class TestTrainingLogImport:
    def test_csv_log(self, client):
        content = "Date,Type,Duration,Distance,Pace\n12/03/2024,Footing,45:00,8.5,5:18\n"

        response = _upload(client, "/import/sessions", "log.csv", content)

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["sessions"][0]["session_type"] == "Footing"
        assert body["sessions"][0]["distance"] == 8.5

    def test_json_log(self, client):
        content = json.dumps([{"date": "2024-03-12", "sessionType": "Footing", "distance": 6}])

        response = _upload(client, "/import/sessions", "log.json", content)

        assert response.json()["count"] == 1

    def test_no_valid_rows(self, client):
        response = _upload(client, "/import/sessions", "log.csv", "Date,Type\n,Footing\n")

        assert response.status_code == 422

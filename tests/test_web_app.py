from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import web_app
from tests.helpers import make_frame, tri


@pytest.fixture
def client():
    with TestClient(web_app.app) as c:
        yield c


def _payload(frame, t_ms):
    return {
        "t_ms": t_ms,
        "landmarks": [
            None if lm is None else {"x": lm.x, "y": lm.y, "visibility": lm.visibility}
            for lm in frame
        ],
    }


def _start(client, **kw):
    body = {
        "t_ms": 0.0,
        "warm_up": False,
        "belt_speed": 10.8,
        "speed_unit": "kmh",
        "min_strike_ms": 300,
        "smoothing_window": 1,
        "ground_gate": False,
        "frame_height": 720,
    }
    body.update(kw)
    r = client.post("/session/start", json=body)
    assert r.status_code == 200
    return r.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_frames_produce_rows_and_csv(client):
    status = _start(client)
    assert status["state"] == "analyzing"
    for i in range(40):
        r = client.post("/frames", json=_payload(make_frame(right_y=tri(i)), i * 20.0))
        assert r.status_code == 200
    rows = client.get("/rows").json()
    assert len(rows) == 2
    assert rows[1]["stride_time_ms"] == 400.0
    assert rows[1]["stride_len_m"] == pytest.approx(1.2)

    csv = client.get("/rows.csv")
    assert csv.status_code == 200
    assert csv.headers["content-type"].startswith("text/csv")
    assert "attachment" in csv.headers["content-disposition"]
    assert csv.text.split("\n")[2].startswith('"2 - Right",,,400,')


def test_frame_without_person(client):
    _start(client)
    status = client.post("/frames", json={"t_ms": 0.0}).json()
    assert status["total_frames"] == 1
    assert status["good_frames"] == 0


def test_stop_reset_and_calibrate(client):
    _start(client, warm_up=True)
    assert client.post("/session/calibrate", json={"t_ms": 10.0}).json()["calibration_status"] == "collecting"
    assert client.post("/session/tick", json={"t_ms": 10_000.0}).json()["state"] == "countdown"
    assert client.post("/session/stop").json()["state"] == "idle"
    assert client.post("/session/calibrate", json={"t_ms": 20.0}).status_code == 409
    assert client.post("/session/reset").json()["step_count"] == 0


def test_bad_speed_unit(client):
    r = client.post("/session/start", json={"speed_unit": "mph"})
    assert r.status_code == 400


def test_analyze_rejects_unknown_file_type(client):
    r = client.post("/analyze", files={"video": ("notes.txt", b"hello", "text/plain")})
    assert r.status_code == 400

from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from sheet_tracker.api import create_app
from sheet_tracker.service import TrackerService
from sheet_tracker.store import MemoryStore


def _service_and_client() -> tuple[TrackerService, TestClient]:
    service = TrackerService.from_store(MemoryStore())
    return service, TestClient(create_app(service))


def test_health_endpoint_exposes_version() -> None:
    _, client = _service_and_client()
    response = client.get("/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "version" in response.json()


def test_state_endpoint_returns_full_view() -> None:
    _, client = _service_and_client()
    payload = client.get("/v1/state").json()
    assert len(payload["metrics"]) == 4
    assert len(payload["progress"]) == 7
    assert payload["selected_day"] == 0
    assert payload["average"] == "–"
    assert payload["history"] == []


def test_grade_flow_uses_selected_day() -> None:
    service, client = _service_and_client()
    assert client.put("/v1/day", json={"day": 2}).json() == {"selected_day": 2}
    response = client.put("/v1/grades", json={"game": 4, "metric": 3, "grade": 5})
    assert response.status_code == 200
    assert response.json()["average"] == "5.00"
    assert service.progress[2][4][3] == 5
    assert client.get("/v1/average").json() == {"avg": "5.00"}


def test_grade_validation_errors() -> None:
    _, client = _service_and_client()
    assert client.put("/v1/grades", json={"game": 5, "metric": 0, "grade": 1}).status_code == 422
    assert client.put("/v1/grades", json={"game": 0, "metric": 0, "grade": 6}).status_code == 422
    assert client.put("/v1/grades", json={"game": 0, "metric": 4, "grade": 1}).status_code == 400
    assert client.put("/v1/day", json={"day": 7}).status_code == 422


def test_metric_add_and_delete_endpoints() -> None:
    service, client = _service_and_client()
    blank = client.post("/v1/metrics", json={"text": "   "})
    assert blank.status_code == 200
    assert blank.json()["added"] is False

    added = client.post("/v1/metrics", json={"text": " Foo "})
    assert added.json()["added"] is True
    assert added.json()["metrics"][-1] == "Foo"
    assert all(len(game) == 5 for day in service.progress for game in day)

    removed = client.delete("/v1/metrics/0")
    assert removed.status_code == 200
    assert removed.json()["removed"] == "Did I think about what I'm playing for?"
    assert client.delete("/v1/metrics/42").status_code == 404


def test_history_and_reset_endpoints() -> None:
    service, client = _service_and_client()
    client.put("/v1/grades", json={"game": 0, "metric": 1, "grade": 4})
    snapshot = client.post("/v1/history").json()
    assert snapshot["avg"] == "4.00"
    assert [item["id"] for item in client.get("/v1/history").json()] == [snapshot["id"]]

    reset = client.post("/v1/progress/reset")
    assert reset.status_code == 200
    assert reset.json()["average"] == "–"
    assert len(service.history) == 1


def test_page_renders_views() -> None:
    service, client = _service_and_client()
    service.add_metric("<b>escaped?</b>")
    response = client.get("/")
    assert response.status_code == 200
    html = response.text
    assert "Improvement Sheet Tracker" in html
    assert "Day 7" in html
    assert "Save to history" in html
    assert "Reset current" in html
    assert "No snapshots saved yet." in html
    assert "&lt;b&gt;escaped?&lt;/b&gt;" in html
    assert "<b>escaped?</b>" not in html


def test_page_renders_with_malformed_history_entries() -> None:
    snapshot = {"id": 5, "timestamp": "2026-02-09T12:30:00.000Z", "metrics": ["a"], "progress": [], "avg": "3.00"}
    service = TrackerService.from_store(MemoryStore({"history": [1, snapshot]}))
    client = TestClient(create_app(service))
    response = client.get("/")
    assert response.status_code == 200
    assert "Avg: 3.00" in response.text
    assert client.get("/v1/history").json() == [snapshot]


def test_form_handlers_redirect_back_to_page() -> None:
    service, client = _service_and_client()
    response = client.post("/ui/day", data={"day": "1"}, follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/"
    client.post("/ui/grades", data={"game": "0", "metric": "0", "grade": "3"}, follow_redirects=False)
    client.post("/ui/metrics", data={"text": "New one"}, follow_redirects=False)
    client.post("/ui/history", follow_redirects=False)
    assert service.progress[1][0][0] == 3
    assert service.metrics[-1] == "New one"
    assert len(service.history) == 1

    client.post("/ui/metrics/4/delete", follow_redirects=False)
    client.post("/ui/reset", follow_redirects=False)
    assert len(service.metrics) == 4
    assert service.average() == "–"

    page = client.get("/").text
    assert "Avg: 3.00" in page


def test_form_grade_outside_table_is_ignored() -> None:
    service, client = _service_and_client()
    client.post("/ui/grades", data={"game": "9", "metric": "0", "grade": "3"}, follow_redirects=False)
    assert service.average() == "–"


def test_unexpected_errors_return_json_500(tmp_path: Path) -> None:
    service = TrackerService.create(tmp_path / "home")
    service.progress = []
    client = TestClient(create_app(service))
    response = client.put("/v1/grades", json={"game": 0, "metric": 0, "grade": 1})
    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_SERVER_ERROR"
    assert any(event["event_type"] == "api.error" for event in service.events.iter_events())  # type: ignore[union-attr]

from __future__ import annotations

"""HTTP API and HTML page for the local tracker."""

from typing import Any

from fastapi import FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import BaseModel, Field

from . import __version__
from .progress import DAY_COUNT, GAMES_PER_DAY, GRADES
from .service import TrackerService
from .views import render_page


MAX_GRADE = GRADES[-1]


class DayRequest(BaseModel):
    """Selected day index for `/v1/day`."""

    day: int = Field(ge=0, le=DAY_COUNT - 1)


class MetricRequest(BaseModel):
    """New checklist question; blank text is accepted and ignored."""

    text: str = Field(default="", max_length=500)


class GradeRequest(BaseModel):
    """One cell of the selected day's grading table."""

    game: int = Field(ge=0, le=GAMES_PER_DAY - 1)
    metric: int = Field(ge=0)
    grade: int = Field(ge=0, le=MAX_GRADE)


def create_app(service: TrackerService) -> FastAPI:
    """Create JSON routes and form handlers backed by one `TrackerService`."""

    app = FastAPI(title="Improvement Sheet Tracker", version=__version__)

    @app.middleware("http")
    async def error_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
        try:
            return await call_next(request)
        except Exception as exc:  # noqa: BLE001
            if service.events is not None:
                service.events.log_event(
                    "api.error",
                    source="api",
                    data={"endpoint": request.url.path, "error_type": exc.__class__.__name__},
                )
            return JSONResponse(
                status_code=500,
                content={"code": "INTERNAL_SERVER_ERROR", "message": "Internal server error"},
            )

    def _check_metric(idx: int) -> None:
        if idx >= len(service.metrics):
            raise HTTPException(status_code=400, detail=f"metric index {idx} out of range")

    def _back_to_page() -> RedirectResponse:
        return RedirectResponse(url="/", status_code=303)

    @app.get("/v1/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "version": __version__}

    @app.get("/v1/state")
    def get_state() -> dict[str, Any]:
        return service.state()

    @app.put("/v1/day")
    def select_day(request: DayRequest) -> dict[str, Any]:
        service.select_day(request.day)
        return {"selected_day": service.selected_day}

    @app.post("/v1/metrics")
    def add_metric(request: MetricRequest) -> dict[str, Any]:
        added = service.add_metric(request.text, source="api")
        return {"added": added, "metrics": list(service.metrics)}

    @app.delete("/v1/metrics/{idx}")
    def delete_metric(idx: int) -> dict[str, Any]:
        removed = service.delete_metric(idx, source="api")
        if removed is None:
            raise HTTPException(status_code=404, detail="Metric not found")
        return {"removed": removed, "metrics": list(service.metrics)}

    @app.put("/v1/grades")
    def set_grade(request: GradeRequest) -> dict[str, Any]:
        _check_metric(request.metric)
        service.set_grade(request.game, request.metric, request.grade, source="api")
        return {
            "day": service.selected_day,
            "game": request.game,
            "metric": request.metric,
            "grade": request.grade,
            "average": service.average(),
        }

    @app.get("/v1/average")
    def get_average() -> dict[str, Any]:
        return {"avg": service.average()}

    @app.get("/v1/history")
    def list_history() -> list[dict[str, Any]]:
        return service.list_history()

    @app.post("/v1/history")
    def save_snapshot() -> dict[str, Any]:
        return service.save_snapshot(source="api")

    @app.post("/v1/progress/reset")
    def reset_progress() -> dict[str, Any]:
        service.reset_progress(source="api")
        return {"progress": service.state()["progress"], "average": service.average()}

    @app.get("/", response_class=HTMLResponse)
    def page() -> str:
        return render_page(service.state())

    @app.post("/ui/day")
    def ui_select_day(day: int = Form(...)) -> RedirectResponse:
        if 0 <= day < DAY_COUNT:
            service.select_day(day)
        return _back_to_page()

    @app.post("/ui/metrics")
    def ui_add_metric(text: str = Form("")) -> RedirectResponse:
        service.add_metric(text, source="ui")
        return _back_to_page()

    @app.post("/ui/metrics/{idx}/delete")
    def ui_delete_metric(idx: int) -> RedirectResponse:
        service.delete_metric(idx, source="ui")
        return _back_to_page()

    @app.post("/ui/grades")
    def ui_set_grade(game: int = Form(...), metric: int = Form(...), grade: int = Form(...)) -> RedirectResponse:
        if 0 <= game < GAMES_PER_DAY and 0 <= metric < len(service.metrics) and 0 <= grade <= MAX_GRADE:
            service.set_grade(game, metric, grade, source="ui")
        return _back_to_page()

    @app.post("/ui/history")
    def ui_save_snapshot() -> RedirectResponse:
        service.save_snapshot(source="ui")
        return _back_to_page()

    @app.post("/ui/reset")
    def ui_reset_progress() -> RedirectResponse:
        service.reset_progress(source="ui")
        return _back_to_page()

    return app

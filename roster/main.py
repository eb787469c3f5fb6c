"""FastAPI entry point for the local roster service.

Exposes athlete, team, event and attendance CRUD, the calendar month grid
and CSV exports to the browser front end, and pushes collection snapshots
over a WebSocket after every mutation.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Depends, FastAPI, Path, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from roster.attendance import AttendanceBook
from roster.calendar_grid import (
    WEEKDAY_LABELS,
    bucket_events,
    month_grid,
    month_title,
    shift_month,
)
from roster.config import RosterSettings, get_settings
from roster.csv_export import (
    ATHLETES_FILENAME,
    ATTENDANCE_FILENAME,
    TEAMS_FILENAME,
    export_athletes_csv,
    export_attendance_csv,
    export_teams_csv,
)
from roster.ids import IdFactory, next_id
from roster.models import (
    Athlete,
    AthleteData,
    AttendanceRecord,
    Event,
    EventData,
    SnapshotMessage,
    StorageKey,
    Team,
    TeamData,
)
from roster.onboarding import WelcomeFlag
from roster.service import RosterService
from roster.storage import JsonFileStorage
from roster.store import EntityStore
from roster.ws_manager import WSConnectionManager

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application state
# ---------------------------------------------------------------------------

@dataclass
class RosterContext:
    """Everything a request handler needs, attached to ``app.state.ctx``."""

    settings: RosterSettings
    store: EntityStore
    roster: RosterService
    attendance: AttendanceBook
    welcome: WelcomeFlag
    ws_manager: WSConnectionManager
    start_time: float = field(default_factory=time.time)
    seq: int = 0

    def next_seq(self) -> int:
        """Return the next monotonic sequence number."""
        self.seq += 1
        return self.seq

    def on_snapshot(self, key: StorageKey, items: list) -> None:
        msg = SnapshotMessage(
            seq=self.next_seq(),
            key=key.value,
            items=[item.to_json_dict() for item in items],
        )
        self.ws_manager.schedule_broadcast(msg.to_json_str())


def build_context(
    settings: RosterSettings, id_factory: IdFactory = next_id
) -> RosterContext:
    storage = JsonFileStorage(settings.data_dir)
    store = EntityStore(storage)
    roster = RosterService(store, id_factory=id_factory)
    ctx = RosterContext(
        settings=settings,
        store=store,
        roster=roster,
        attendance=AttendanceBook(store, roster),
        welcome=WelcomeFlag(storage),
        ws_manager=WSConnectionManager(),
    )
    store.subscribe(ctx.on_snapshot)
    return ctx


def get_ctx(request: Request) -> RosterContext:
    return request.app.state.ctx


def _not_found(kind: str, item_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"error": f"{kind} '{item_id}' not found"},
    )


def _csv_response(content: str, filename: str) -> PlainTextResponse:
    return PlainTextResponse(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


router = APIRouter()


# ---------------------------------------------------------------------------
# HTTP endpoints - health
# ---------------------------------------------------------------------------

@router.get("/api/health")
async def health(ctx: RosterContext = Depends(get_ctx)) -> dict:
    """Service and storage health check."""
    return {
        "status": "healthy",
        "uptime_s": int(time.time() - ctx.start_time),
        "data_dir": str(ctx.settings.data_dir),
        "ws_clients": ctx.ws_manager.client_count,
        "storage_counters": ctx.store.counters,
        "athletes": len(ctx.store.athletes()),
        "teams": len(ctx.store.teams()),
        "events": len(ctx.store.events()),
        "attendance_records": len(ctx.store.attendance()),
    }


@router.get("/api/snapshot")
async def snapshot(ctx: RosterContext = Depends(get_ctx)) -> dict:
    """All four collections, for a client (re)connecting."""
    return ctx.store.snapshot()


# ---------------------------------------------------------------------------
# HTTP endpoints - athletes
# ---------------------------------------------------------------------------

@router.get("/api/athletes")
async def list_athletes(ctx: RosterContext = Depends(get_ctx)) -> dict:
    return {"athletes": [a.to_json_dict() for a in ctx.store.athletes()]}


@router.post("/api/athletes", status_code=201)
async def add_athlete(data: AthleteData, ctx: RosterContext = Depends(get_ctx)) -> dict:
    return ctx.roster.add_athlete(data).to_json_dict()


@router.put("/api/athletes/{athlete_id}", response_model=None)
async def update_athlete(
    athlete_id: str, data: AthleteData, ctx: RosterContext = Depends(get_ctx)
):
    athlete = Athlete(id=athlete_id, **data.model_dump())
    if not ctx.roster.update_athlete(athlete):
        return _not_found("Athlete", athlete_id)
    return athlete.to_json_dict()


@router.delete("/api/athletes/{athlete_id}")
async def delete_athlete(athlete_id: str, ctx: RosterContext = Depends(get_ctx)) -> dict:
    """Delete an athlete; it is also removed from every team."""
    ctx.roster.delete_athlete(athlete_id)
    return {"status": "deleted", "id": athlete_id}


# ---------------------------------------------------------------------------
# HTTP endpoints - teams
# ---------------------------------------------------------------------------

@router.get("/api/teams")
async def list_teams(ctx: RosterContext = Depends(get_ctx)) -> dict:
    """Return teams with their resolvable member names."""
    return {
        "teams": [
            {
                **t.to_json_dict(),
                "memberNames": [
                    ctx.roster.athlete_display_name(i) for i in t.athlete_ids
                ],
            }
            for t in ctx.store.teams()
        ]
    }


@router.post("/api/teams", status_code=201)
async def add_team(data: TeamData, ctx: RosterContext = Depends(get_ctx)) -> dict:
    return ctx.roster.add_team(data).to_json_dict()


@router.put("/api/teams/{team_id}", response_model=None)
async def update_team(team_id: str, data: TeamData, ctx: RosterContext = Depends(get_ctx)):
    team = Team(id=team_id, **data.model_dump())
    if not ctx.roster.update_team(team):
        return _not_found("Team", team_id)
    return team.to_json_dict()


@router.delete("/api/teams/{team_id}")
async def delete_team(team_id: str, ctx: RosterContext = Depends(get_ctx)) -> dict:
    """Delete a team; its events and attendance are kept."""
    ctx.roster.delete_team(team_id)
    return {"status": "deleted", "id": team_id}


# ---------------------------------------------------------------------------
# HTTP endpoints - events & attendance
# ---------------------------------------------------------------------------

@router.get("/api/events")
async def list_events(
    date: Optional[str] = Query(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    ctx: RosterContext = Depends(get_ctx),
) -> dict:
    events = ctx.roster.events_on(date) if date else ctx.store.events()
    return {"events": [e.to_json_dict() for e in events]}


@router.post("/api/events", status_code=201)
async def add_event(data: EventData, ctx: RosterContext = Depends(get_ctx)) -> dict:
    return ctx.roster.add_event(data).to_json_dict()


@router.put("/api/events/{event_id}", response_model=None)
async def update_event(event_id: str, data: EventData, ctx: RosterContext = Depends(get_ctx)):
    event = Event(id=event_id, **data.model_dump())
    if not ctx.roster.update_event(event):
        return _not_found("Event", event_id)
    return event.to_json_dict()


@router.get("/api/events/{event_id}/attendance", response_model=None)
async def attendance_sheet(event_id: str, ctx: RosterContext = Depends(get_ctx)):
    """Resolved attendance for every member of the event's team."""
    event = ctx.roster.get_event(event_id)
    if event is None:
        return _not_found("Event", event_id)
    sheet = ctx.attendance.sheet(event)
    if sheet is None:
        return _not_found("Team", event.team_id)
    return {
        "event": event.to_json_dict(),
        "team": sheet.team.to_json_dict(),
        "rows": [
            {"athlete": row.athlete.to_json_dict(), "record": row.record.to_json_dict()}
            for row in sheet.rows
        ],
    }


@router.put("/api/attendance")
async def upsert_attendance(
    record: AttendanceRecord, ctx: RosterContext = Depends(get_ctx)
) -> dict:
    ctx.attendance.upsert_attendance(record)
    return record.to_json_dict()


@router.post("/api/events/{event_id}/attendance/mark-all-present", response_model=None)
async def mark_all_present(event_id: str, ctx: RosterContext = Depends(get_ctx)):
    event = ctx.roster.get_event(event_id)
    if event is None:
        return _not_found("Event", event_id)
    team = ctx.roster.get_team(event.team_id)
    if team is None:
        return _not_found("Team", event.team_id)
    members = [a.id for a in ctx.roster.team_members(team)]
    changed = ctx.attendance.mark_all_present(event.id, members)
    return {"event_id": event.id, "changed": changed}


# ---------------------------------------------------------------------------
# HTTP endpoints - calendar
# ---------------------------------------------------------------------------

@router.get("/api/calendar/{year}/{month}")
async def calendar_month(
    year: int = Path(ge=1, le=9998),
    month: int = Path(ge=1, le=12),
    ctx: RosterContext = Depends(get_ctx),
) -> dict:
    """Month grid (Monday-first) with each day's events."""
    cells = month_grid(year, month)
    buckets = bucket_events(cells, ctx.store.events())
    prev_year, prev_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)
    return {
        "year": year,
        "month": month,
        "title": month_title(year, month),
        "weekdays": list(WEEKDAY_LABELS),
        "cells": [
            {
                "date": cell.key,
                "day": cell.day,
                "eventCount": len(buckets.get(cell.key, [])),
                "events": [e.to_json_dict() for e in buckets.get(cell.key, [])],
            }
            for cell in cells
        ],
        "prev": {"year": prev_year, "month": prev_month},
        "next": {"year": next_year, "month": next_month},
    }


# ---------------------------------------------------------------------------
# HTTP endpoints - export
# ---------------------------------------------------------------------------

@router.get("/api/export/athletes.csv")
async def export_athletes(ctx: RosterContext = Depends(get_ctx)) -> PlainTextResponse:
    return _csv_response(export_athletes_csv(ctx.store.athletes()), ATHLETES_FILENAME)


@router.get("/api/export/teams.csv")
async def export_teams(ctx: RosterContext = Depends(get_ctx)) -> PlainTextResponse:
    return _csv_response(
        export_teams_csv(ctx.store.teams(), ctx.store.athletes()), TEAMS_FILENAME
    )


@router.get("/api/export/attendance.csv")
async def export_attendance(ctx: RosterContext = Depends(get_ctx)) -> PlainTextResponse:
    content = export_attendance_csv(
        ctx.store.attendance(),
        ctx.store.events(),
        ctx.store.athletes(),
        ctx.store.teams(),
    )
    return _csv_response(content, ATTENDANCE_FILENAME)


# ---------------------------------------------------------------------------
# HTTP endpoints - onboarding
# ---------------------------------------------------------------------------

@router.get("/api/welcome")
async def welcome_state(ctx: RosterContext = Depends(get_ctx)) -> dict:
    return {StorageKey.WELCOME_SEEN.value: ctx.welcome.has_seen()}


@router.post("/api/welcome/dismiss")
async def dismiss_welcome(ctx: RosterContext = Depends(get_ctx)) -> dict:
    ctx.welcome.mark_seen()
    return {StorageKey.WELCOME_SEEN.value: True}


@router.delete("/api/welcome")
async def reset_welcome(ctx: RosterContext = Depends(get_ctx)) -> dict:
    ctx.welcome.reset()
    return {StorageKey.WELCOME_SEEN.value: False}


# ---------------------------------------------------------------------------
# WebSocket endpoint
# ---------------------------------------------------------------------------

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Snapshot feed for front-end clients."""
    ws_manager: WSConnectionManager = websocket.app.state.ctx.ws_manager
    await ws_manager.connect(websocket)
    try:
        while True:
            data = await websocket.receive_text()
            logger.debug("Received client message: %s", data[:100])
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Startup and shutdown logic for the FastAPI app."""
    ctx: RosterContext = app.state.ctx
    logger.info("Roster service starting (data dir %s)...", ctx.settings.data_dir)
    ctx.store.load_all()
    logger.info(
        "Roster service ready - listening on %s:%d", ctx.settings.host, ctx.settings.port
    )
    yield
    logger.info("Roster service shutting down...")


def create_app(
    settings: Optional[RosterSettings] = None, id_factory: IdFactory = next_id
) -> FastAPI:
    """Build the FastAPI app around a fresh store in ``settings.data_dir``."""
    settings = settings or get_settings()

    app = FastAPI(title="Roster Manager", version="1.0.0", lifespan=lifespan)
    app.state.ctx = build_context(settings, id_factory=id_factory)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)

    if settings.static_dir is not None:
        if settings.static_dir.is_dir():
            app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
        else:
            logger.warning("Static dir %s not found - front end not served", settings.static_dir)

    return app


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run() -> None:
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

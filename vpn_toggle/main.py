import asyncio
import json
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from .logging_utility import logger, configure_logging
from .retry import AutoRetryPolicy
from .settings import Settings, load_settings
from .status_board import StatusBoard
from .vpn.supervisor import OpenVPNSupervisor

KEEPALIVE_SECONDS = 15


class StatusResponse(BaseModel):
    status: str
    label: str
    message: str
    running: bool
    pid: Optional[int] = None


class DisplayState(BaseModel):
    status: str
    headline: str
    detail: str
    action_label: str
    busy: bool


class EventRecord(BaseModel):
    status: str
    label: str
    message: str
    kind: Optional[str] = None
    generation: int
    timestamp: float


def _status_response(supervisor: OpenVPNSupervisor) -> StatusResponse:
    event = supervisor.last_event
    return StatusResponse(
        status=supervisor.current_status().value,
        label=event.label,
        message=event.message,
        running=supervisor.is_running,
        pid=supervisor.pid,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        supervisor = OpenVPNSupervisor.from_settings(settings)
        board = StatusBoard()
        supervisor.subscribe(board.update)
        retry = AutoRetryPolicy.from_settings(supervisor, board, settings) if settings.retry_enabled else None

        app.state.supervisor = supervisor
        app.state.board = board
        app.state.retry = retry

        supervisor.init()
        logger.info("VPN Toggle started")
        try:
            yield
        finally:
            if retry is not None:
                retry.close()
            supervisor.shutdown()
            logger.info("VPN Toggle stopped")

    app = FastAPI(title="VPN Toggle", lifespan=lifespan)

    @app.post("/vpn/toggle", response_model=StatusResponse)
    async def toggle(request: Request):
        """Connect, or disconnect when a VPN process is running"""
        if request.app.state.board.busy:
            logger.info("Connection in progress, ignoring toggle")
            raise HTTPException(status_code=409, detail="Connection in progress")
        supervisor = request.app.state.supervisor
        try:
            await supervisor.connect()
            return _status_response(supervisor)
        except Exception as e:
            logger.error(f"Error toggling VPN: {str(e)}")
            raise HTTPException(status_code=500, detail="Failed to toggle VPN")

    @app.post("/vpn/connect", response_model=StatusResponse)
    async def connect(request: Request):
        """Start the VPN unless it is already running"""
        supervisor = request.app.state.supervisor
        try:
            if not supervisor.is_running:
                await supervisor.connect()
            return _status_response(supervisor)
        except Exception as e:
            logger.error(f"Error connecting VPN: {str(e)}")
            raise HTTPException(status_code=500, detail="Failed to connect VPN")

    @app.post("/vpn/disconnect", response_model=StatusResponse)
    async def disconnect(request: Request):
        """Stop the VPN process"""
        supervisor = request.app.state.supervisor
        try:
            supervisor.disconnect()
            return _status_response(supervisor)
        except Exception as e:
            logger.error(f"Error disconnecting VPN: {str(e)}")
            raise HTTPException(status_code=500, detail="Failed to disconnect VPN")

    @app.get("/vpn/status", response_model=StatusResponse)
    async def get_status(request: Request):
        """Current VPN state"""
        return _status_response(request.app.state.supervisor)

    @app.get("/vpn/display", response_model=DisplayState)
    async def get_display(request: Request):
        """What the client window should show"""
        return DisplayState(**request.app.state.board.snapshot())

    @app.get("/vpn/history", response_model=List[EventRecord])
    async def get_history(request: Request, limit: int = 20):
        """Recent status events, oldest first"""
        return [EventRecord(**event.as_dict()) for event in request.app.state.board.recent(limit)]

    @app.get("/vpn/events")
    async def stream_events(request: Request):
        """Stream status events in SSE format"""
        board = request.app.state.board
        queue = board.listen()

        async def event_generator():
            try:
                while True:
                    if await request.is_disconnected():
                        break
                    try:
                        event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                    except asyncio.TimeoutError:
                        yield ": keep-alive\n\n"
                        continue
                    yield f"data: {json.dumps(event.as_dict())}\n\n"
            finally:
                board.unlisten(queue)

        headers = {
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
        return StreamingResponse(event_generator(), media_type="text/event-stream", headers=headers)

    return app


app = create_app()

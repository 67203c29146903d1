import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Dict
from uuid import UUID

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from death_draft.data_access import DraftDataAccess
from death_draft.domain.roster import Roster
from death_draft.manager import ConnectionManager
from death_draft.models.dc_models import InvalidSeatModel
from death_draft.redis_subscriber import HEART_BEAT
from death_draft.views.board_view import BoardView
from death_draft.views.pick_view import PickView

live_router = APIRouter()
connection_manager = ConnectionManager()


def sse_message(event: str, payload: Dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


async def board_event_generator(
    data_access: DraftDataAccess, roster: Roster
) -> AsyncGenerator[str, None]:
    """Event generator to stream board snapshots as SSE events.

    The first event carries the full board; every change applied by the
    view afterwards sends a new snapshot. A comment line is sent when idle
    so proxies keep the connection open.

    Args:
        data_access (DraftDataAccess): Backend access for the board view.
        roster (Roster): Players in draft order.
    """
    updates: asyncio.Queue = asyncio.Queue()

    async def on_change():
        await updates.put(None)

    view = BoardView(data_access, roster, on_change=on_change)
    await view.mount()
    connection_manager.register(view)
    try:
        yield sse_message("board_update", view.snapshot())
        while True:
            try:
                await asyncio.wait_for(updates.get(), timeout=HEART_BEAT)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield sse_message("board_update", view.snapshot())
    finally:
        logging.info("Board stream closed")
        connection_manager.unregister(view)
        await view.unmount()


async def handle_pick_action(view: PickView, message: Dict[str, Any]):
    """Apply one action sent by a pick screen

    Args:
        view (PickView): The connection's view
        message (Dict[str, Any]): {"action": ..., ...}
    """
    if not isinstance(message, dict):
        view.error = "Malformed message."
        return
    action = message.get("action")
    if action == "select":
        try:
            celebrity_id = UUID(str(message.get("celebrity_id")))
        except ValueError:
            view.error = "Invalid celebrity id."
            return
        view.select(celebrity_id)
    elif action == "cancel":
        view.cancel()
    elif action == "confirm":
        await view.confirm()
    elif action == "refresh":
        await view.refresh()
    elif action == "visible":
        await view.handle_visibility_change(bool(message.get("visible", True)))
    else:
        view.error = f"Unknown action: {action}"


class BoardStream:
    @staticmethod
    @live_router.get("/board/stream")
    async def stream_board(request: Request):
        return StreamingResponse(
            board_event_generator(request.app.state.data_access, request.app.state.roster),
            media_type="text/event-stream; charset=utf-8",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )


class PickSocket:
    @staticmethod
    @live_router.websocket("/ws/pick/{seat}")
    async def pick_socket(websocket: WebSocket, seat: str):
        data_access: DraftDataAccess = websocket.app.state.data_access
        roster: Roster = websocket.app.state.roster
        await connection_manager.connect(websocket)

        parsed = roster.parse_seat(seat)
        if parsed is None:
            body = InvalidSeatModel(message=f"This page expects a seat from 1 to {len(roster)}.")
            await connection_manager.send_personal_message(body.model_dump(), websocket)
            await websocket.close(code=1008)
            connection_manager.disconnect(websocket)
            return

        async def push():
            await connection_manager.send_personal_message(view.snapshot(), websocket)

        view = PickView(data_access, parsed, roster, on_change=push)
        await view.mount()
        connection_manager.register(view)
        try:
            await push()
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError:
                    view.error = "Malformed message."
                else:
                    await handle_pick_action(view, message)
                await push()
        except WebSocketDisconnect:
            logging.info(f"Pick screen for seat {parsed} disconnected")
        finally:
            connection_manager.unregister(view)
            await view.unmount()
            connection_manager.disconnect(websocket)

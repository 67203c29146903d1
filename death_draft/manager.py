import asyncio
from fastapi import WebSocket
from typing import Dict, List
import logging


class ConnectionManager:
    """Keeps track of the views mounted for open connections."""

    def __init__(self):
        self.active_views: List = []
        # Keyed by id(): starlette connections are not hashable.
        self.send_locks: Dict[int, asyncio.Lock] = {}

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.send_locks[id(websocket)] = asyncio.Lock()

    def disconnect(self, websocket: WebSocket):
        self.send_locks.pop(id(websocket), None)

    def register(self, view):
        """Track a mounted BoardView or PickView

        Args:
            view: The view serving one connection
        """
        self.active_views.append(view)

    def unregister(self, view):
        if view in self.active_views:
            self.active_views.remove(view)

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        """Send one JSON message; sends on the same socket never interleave

        Args:
            message (dict): JSON-serialisable payload
            websocket (WebSocket): Destination connection
        """
        lock = self.send_locks.setdefault(id(websocket), asyncio.Lock())
        async with lock:
            await websocket.send_json(message)

    async def resync_views(self):
        """Full reload of every mounted view, in case a subscription stalled silently."""
        views = list(self.active_views)
        if views:
            logging.info(f"Resyncing {len(views)} mounted views")
        for view in views:
            try:
                await view.resync()
            except Exception as e:
                logging.error(f"Failed to resync view: {e}")

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from death_draft.data_access import DraftDataAccess
from death_draft.domain.roster import Roster
from death_draft.errors import DataAccessError
from death_draft.models.dc_models import (
    HomeModel,
    HomeTileModel,
    InvalidSeatModel,
    PickRequestModel,
    PickResultModel,
)
from death_draft.views.board_view import BoardView
from death_draft.views.pick_view import PickView

APP_TITLE = "Celebrity Death Draft"
MANIFEST = {
    "name": "10th Annual Celebrity Death Draft",
    "short_name": "Death Draft",
    "start_url": "/",
    "display": "standalone",
    "background_color": "#000000",
    "theme_color": "#000000",
    "icons": [
        {"src": "/icon-512.png", "sizes": "512x512", "type": "image/png"},
        {"src": "/icon-192.png", "sizes": "192x192", "type": "image/png"},
    ],
}

rest_router = APIRouter()


def get_data_access(request: Request) -> DraftDataAccess:
    return request.app.state.data_access


def get_roster(request: Request) -> Roster:
    return request.app.state.roster


def invalid_seat_response(roster: Roster) -> JSONResponse:
    body = InvalidSeatModel(message=f"This page expects a seat from 1 to {len(roster)}.")
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body.model_dump())


async def load_board(data_access: DraftDataAccess, roster: Roster) -> BoardView:
    """Load a one-off board view without live updates."""
    view = BoardView(data_access, roster)
    await view.mount(subscribe=False)
    await view.unmount()
    if view.error:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Error loading board: {view.error}",
        )
    return view


def attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


class HomeAPI:
    @staticmethod
    @rest_router.get("/", response_model=HomeModel)
    async def home(
        data_access: DraftDataAccess = Depends(get_data_access),
        roster: Roster = Depends(get_roster),
    ):
        """Landing page: pool size, a tile per screen and the draft order"""
        tiles = [HomeTileModel(href="/board", title="Draft Board", subtitle="Screen-share view")]
        tiles += [HomeTileModel(href=f"/pick/{p.seat}", title=p.name) for p in roster]

        celebrity_count = None
        error = None
        try:
            celebrity_count = await data_access.count_celebrities()
        except DataAccessError as e:
            error = f"DB error: {e}"

        return HomeModel(
            title=APP_TITLE,
            celebrity_count=celebrity_count,
            error=error,
            tiles=tiles,
            draft_order=f"Draft order: {roster.draft_order_label()}",
        )

    @staticmethod
    @rest_router.get("/manifest.webmanifest")
    async def manifest():
        return JSONResponse(content=MANIFEST, media_type="application/manifest+json")


class BoardAPI:
    @staticmethod
    @rest_router.get("/board")
    async def get_board(
        data_access: DraftDataAccess = Depends(get_data_access),
        roster: Roster = Depends(get_roster),
    ):
        view = await load_board(data_access, roster)
        return view.snapshot()

    @staticmethod
    @rest_router.get("/board/export.csv")
    async def export_board_csv(
        data_access: DraftDataAccess = Depends(get_data_access),
        roster: Roster = Depends(get_roster),
    ):
        view = await load_board(data_access, roster)
        filename, text = view.export_csv()
        return Response(
            content=text,
            media_type="text/csv; charset=utf-8",
            headers=attachment(filename),
        )

    @staticmethod
    @rest_router.get("/board/export.png")
    async def export_board_png(
        data_access: DraftDataAccess = Depends(get_data_access),
        roster: Roster = Depends(get_roster),
    ):
        view = await load_board(data_access, roster)
        filename, image = view.export_png()
        return Response(content=image, media_type="image/png", headers=attachment(filename))


class PickAPI:
    @staticmethod
    @rest_router.get("/pick/{seat}")
    async def get_pick_page(
        seat: str,
        data_access: DraftDataAccess = Depends(get_data_access),
        roster: Roster = Depends(get_roster),
    ):
        """Snapshot of a player's pick screen

        Args:
            seat (str): Seat number from the URL; anything but 1..N gets the invalid-seat page
        """
        parsed = roster.parse_seat(seat)
        if parsed is None:
            return invalid_seat_response(roster)

        view = PickView(data_access, parsed, roster)
        await view.mount(subscribe=False)
        await view.unmount()
        return view.snapshot()

    @staticmethod
    @rest_router.post("/pick/{seat}", response_model=PickResultModel)
    async def make_pick(
        seat: str,
        pick_request: PickRequestModel,
        data_access: DraftDataAccess = Depends(get_data_access),
        roster: Roster = Depends(get_roster),
    ):
        """Submit a pick straight to the pick procedure

        There is no turn gate here; the procedure decides, and a rejection
        comes back as ok=false with a message rather than an HTTP error.
        """
        parsed = roster.parse_seat(seat)
        if parsed is None:
            return invalid_seat_response(roster)

        try:
            return await data_access.make_pick(parsed, pick_request.celebrity_id)
        except DataAccessError as e:
            logging.error(f"Pick by seat {parsed} failed: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Pick failed.",
            )

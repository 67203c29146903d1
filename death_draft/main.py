from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager
from redis.asyncio import Redis

from death_draft.data_access import DraftDataAccess
from death_draft.db import Session, engine
from death_draft.domain.roster import Roster
from death_draft.load_secrets import (
    draft_roster,
    redis_host,
    redis_port,
    resync_interval_seconds,
)
from death_draft.models.schemas import Base
from death_draft.routers import live, restapi
from death_draft.routers.live import connection_manager
from death_draft.services.draft_db import seed_draft_state

scheduler = AsyncIOScheduler()
logging.basicConfig(level=logging.INFO)

roster = Roster.from_config(draft_roster)


@asynccontextmanager
async def lifespan(app):
    """Create tables, seed the draft state and connect the change feed.
    This function is called to start the server.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_draft_state(Session)

    redis = Redis(host=redis_host, port=redis_port, decode_responses=True, health_check_interval=30)
    app.state.roster = roster
    app.state.data_access = DraftDataAccess(Session, redis, roster)

    # Reload every mounted view now and then in case its subscription stalled
    scheduler.add_job(
        connection_manager.resync_views,
        "interval",
        seconds=resync_interval_seconds,
    )
    scheduler.start()
    logging.info(f"Draft order: {roster.draft_order_label()}")
    try:
        yield
    finally:
        scheduler.shutdown()
        await redis.aclose()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)
app.include_router(restapi.rest_router)
app.include_router(live.live_router)

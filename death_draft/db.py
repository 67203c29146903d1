from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from death_draft.engines import create_engine_for
from death_draft.load_secrets import db_backend

engine = create_engine_for(db_backend)

# Centralized session factory to avoid creating it in router modules.
Session = async_sessionmaker(
    autocommit=False,
    class_=AsyncSession,
    autoflush=True,
    bind=engine,
    expire_on_commit=False,
)

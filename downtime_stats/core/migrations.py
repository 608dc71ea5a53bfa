"""Schema bootstrap: bring the configured database to the Alembic head on startup."""

import asyncio
import enum
from pathlib import Path

import structlog
from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect
from sqlalchemy.engine import Connection

from downtime_stats.core import database as db_module

logger = structlog.get_logger()

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# Present in every revision; its absence means nothing has been created yet
_SENTINEL_TABLE = "heartbeats"


class SchemaState(enum.Enum):
    EMPTY = "empty"
    UNTRACKED = "untracked"  # tables exist, no Alembic revision recorded
    TRACKED = "tracked"


def alembic_config() -> Config:
    """Alembic config pointed at the live engine's URL, independent of cwd."""
    cfg = Config(str(_PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_PROJECT_ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_module.engine.url.render_as_string(hide_password=False))
    return cfg


def _inspect_schema(connection: Connection) -> tuple[SchemaState, str | None]:
    revision = MigrationContext.configure(connection).get_current_revision()
    if revision is not None:
        return SchemaState.TRACKED, revision
    if inspect(connection).has_table(_SENTINEL_TABLE):
        return SchemaState.UNTRACKED, None
    return SchemaState.EMPTY, None


async def ensure_db_migrated() -> SchemaState:
    """Create, stamp or upgrade the schema depending on what is already there.

    An empty database gets ``create_all`` and is stamped at head. Tables made
    by ``create_all`` without a recorded revision are stamped. A tracked
    database is upgraded to head.
    """
    engine = db_module.engine
    async with engine.connect() as conn:
        state, revision = await conn.run_sync(_inspect_schema)

    logger.info("schema_checked", state=state.value, revision=revision)
    cfg = alembic_config()

    if state is SchemaState.EMPTY:
        async with engine.begin() as conn:
            await conn.run_sync(db_module.Base.metadata.create_all)
        await asyncio.to_thread(command.stamp, cfg, "head")
    elif state is SchemaState.UNTRACKED:
        await asyncio.to_thread(command.stamp, cfg, "head")
    else:
        await asyncio.to_thread(command.upgrade, cfg, "head")

    return state

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__, settings
from .db import engine
from .routers import posts, search, stats, system, taxonomy, tracking, users

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

_STARTUP_COMPLETE = False


def _alembic_config() -> Config:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    return cfg


def _pending_heads(cfg: Config) -> set[str]:
    """Migration heads the database has not reached yet."""
    try:
        with engine.connect() as connection:
            applied = set(MigrationContext.configure(connection).get_current_heads())
    finally:
        # Alembic opens its own connections; do not keep ours pooled
        engine.dispose()
    return set(ScriptDirectory.from_config(cfg).get_heads()) - applied


def run_migrations() -> None:
    cfg = _alembic_config()
    pending = _pending_heads(cfg)
    if not pending:
        logger.info("run_migrations: Database schema is up to date.")
        return

    logger.info(f"run_migrations: Upgrading to {sorted(pending)}...")
    try:
        command.upgrade(cfg, "heads")
    except Exception as e:
        logger.error(f"run_migrations: Upgrade failed: {e}", exc_info=True)
        raise
    logger.info("run_migrations: Completed successfully.")


def run_startup_tasks() -> None:
    global _STARTUP_COMPLETE
    if _STARTUP_COMPLETE:
        return
    run_migrations()
    _STARTUP_COMPLETE = True
    logger.info("Startup tasks completed.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The server does not accept requests until the schema is current
    run_startup_tasks()
    logger.info(f"Inkwell API {__version__} ready")
    yield
    logger.info("Shutting down Inkwell API...")


app = FastAPI(
    title="Inkwell API",
    version=__version__,
    description="Content-management backend for a self-hosted blog admin",
    lifespan=lifespan,
)

if "*" in settings.CORS_ORIGINS:
    logger.warning("CORS allows all origins; set CORS_ORIGINS to the admin's domains in production.")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
    max_age=600,
)

app.include_router(system.router)
app.include_router(posts.router)
app.include_router(search.router)
app.include_router(stats.router)
app.include_router(taxonomy.tags_router)
app.include_router(taxonomy.topics_router)
app.include_router(users.router)
app.include_router(tracking.router)

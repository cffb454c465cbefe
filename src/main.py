"""
Production FastAPI Application

Seat/booking consistency service: record store, optimistic gate, allocation
engine and change notifier behind one HTTP surface.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.platform.app_factory import create_app
from src.platform.config.core_setting import settings
from src.platform.config.di import cleanup, container
from src.platform.config.wire_modules import WIRE_MODULES
from src.platform.logging.loguru_io import Logger
from src.platform.state.kvrocks_client import kvrocks_client
from src.platform.state.lua_script_executor import lua_script_executor


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown."""
    Logger.base.info('🚀 [Seatflow] Starting up...')

    container.wire(modules=WIRE_MODULES)
    Logger.base.info('🔌 [Seatflow] Dependency injection wired')

    if settings.STORE_BACKEND == 'kvrocks':
        # Fail-fast: the record store is useless without its scripts
        client = await kvrocks_client.initialize()
        await lua_script_executor.initialize(client=client)
        Logger.base.info('📡 [Seatflow] Kvrocks record store ready')
    else:
        Logger.base.warning('⚠️ [Seatflow] In-memory record store: state is lost on restart')

    Logger.base.info('✅ [Seatflow] Ready to serve requests')

    yield

    Logger.base.info('🛑 [Seatflow] Shutting down...')

    if settings.STORE_BACKEND == 'kvrocks':
        await kvrocks_client.disconnect()
        Logger.base.info('📡 [Seatflow] Kvrocks disconnected')

    container.unwire()
    cleanup()
    Logger.base.info('👋 [Seatflow] Shutdown complete')


app = create_app(lifespan=lifespan)


@app.get('/')
async def root() -> RedirectResponse:
    """Root endpoint - redirect to docs."""
    return RedirectResponse(url='/docs')

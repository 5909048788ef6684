"""Local status and control API over a running client session (FastAPI)."""

import asyncio
import contextlib
from collections.abc import AsyncIterator

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from peerclient.config.schema import Network
from peerclient.errors import FederationError
from peerclient.session import ClientSession


class NetworkRequest(BaseModel):
    network: Network


class CoordinatorRequest(BaseModel):
    coordinator: int | str


def create_app(session: ClientSession, tick: bool = True) -> FastAPI:
    """Build the app. With tick, the session's timers run from the app's event loop.

    Session calls that reach a coordinator run in a worker thread, one at a
    time under a lock shared with the tick task. Read-only endpoints never
    take the lock, so they answer while a coordinator is slow.
    """
    lock = asyncio.Lock()

    async def call(fn, *args):
        async with lock:
            return await asyncio.to_thread(fn, *args)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        task = asyncio.create_task(_tick(session, lock)) if tick else None
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            session.close()

    app = FastAPI(title="Peer Client", version=session.config.client_version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Data endpoints ──────────────────────────────────────────────

    @app.get("/api/status")
    async def get_status():
        return session.snapshot()

    @app.get("/api/order")
    async def get_order():
        return session.orders.view.to_dict()

    @app.get("/api/robot")
    async def get_robot():
        return {
            **session.robot.to_dict(),
            "loading": session.identity.loading,
            "message": session.identity.message,
        }

    @app.get("/api/coordinators")
    async def get_coordinators():
        return {
            "network": session.network.value,
            "active": session.active_coordinator,
            "coordinators": [c.model_dump() for c in session.registry],
        }

    @app.get("/api/book")
    async def get_book():
        orders = await call(session.market.load_book)
        return {"orders": orders, "message": session.market.message}

    @app.get("/api/limits")
    async def get_limits():
        return await call(session.market.load_limits)

    @app.get("/api/info")
    async def get_info():
        info = await call(session.market.load_info)
        if info is None:
            raise HTTPException(status_code=502, detail=session.market.message or "No info")
        check = session.market.version_check
        return {
            **info.payload,
            "update_available": check.update_available if check else None,
            "coordinator_version": check.coordinator_version if check else None,
            "client_version": check.client_version if check else None,
        }

    # ── Control endpoints ───────────────────────────────────────────

    @app.post("/api/order/{order_id}/track")
    async def track_order(order_id: int):
        await call(session.track_order, order_id)
        return session.orders.view.to_dict()

    @app.post("/api/order/renew")
    async def renew_order():
        new_id = await call(session.renew_order)
        if new_id is None:
            raise HTTPException(
                status_code=409, detail=session.orders.view.message or "Nothing to renew"
            )
        return {"id": new_id}

    @app.post("/api/robot/profile")
    async def open_profile():
        mode = await call(session.open_profile)
        return {"mode": mode.value if mode else None, **session.robot.to_dict()}

    @app.post("/api/network")
    async def set_network(req: NetworkRequest):
        try:
            changed = await call(session.set_network, req.network)
        except FederationError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return {"changed": changed, "base_url": session.base_url}

    @app.post("/api/coordinator")
    async def set_coordinator(req: CoordinatorRequest):
        try:
            changed = await call(session.select_coordinator, req.coordinator)
        except FederationError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return {"changed": changed, "base_url": session.base_url}

    return app


async def _tick(session: ClientSession, lock: asyncio.Lock) -> None:
    interval = session.config.polling.tick_seconds
    while True:
        async with lock:
            await asyncio.to_thread(session.scheduler.run_due)
        await asyncio.sleep(interval)

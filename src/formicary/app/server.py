from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Set

import numpy as np
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..datasets import gaussian_blobs
from ..sim.core.config import AntGridConfig
from ..sim.core.grid_colony import GridColony
from ..sim.core.points import PointStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    cycle: int
    payload: str


class LatticeController:
    """Steps a grid colony one cycle at a time and streams lattice snapshots."""

    def __init__(
        self,
        config: AntGridConfig,
        features: Optional[np.ndarray] = None,
        interval: float = 0.1,
        broadcast_interval: int = 1,
    ):
        self.config = config
        if features is None:
            features, _ = gaussian_blobs(seed=config.seed)
        self.points = PointStore(features, replace_missing=config.replace_missing)
        self.colony = GridColony(config, self.points)
        self.interval = interval
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque()
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None
        self._cluster_count: Optional[int] = None

    @property
    def cycle(self) -> int:
        return self.colony.cycle

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.colony.reset()
            self._cluster_count = None
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval / self.speed_multiplier)
            if not self.running:
                continue
            await self.advance()

    async def advance(self) -> None:
        async with self._lock:
            if self.colony.finished:
                if self._cluster_count is None:
                    result = self.colony.extract()
                    self._cluster_count = result.cluster_count
                    logger.info("Lattice run finished with %d clusters", result.cluster_count)
                self.running = False
                return
            self.colony.run_cycle()
        if self.cycle % self.broadcast_interval == 0:
            await self._broadcast_snapshot()

    async def acknowledge(self, cycle: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].cycle <= cycle:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.colony.snapshot()
        payload = {
            "type": "snapshot",
            "cycle": snapshot.cycle,
            "payload": {
                "cycle": snapshot.cycle,
                "metrics": asdict(snapshot.metrics) if snapshot.metrics is not None else None,
                "grid": asdict(snapshot.grid),
                "ants": snapshot.ants,
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(cycle=snapshot.cycle, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.cycle > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.cycle
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


def _viewer_config() -> AntGridConfig:
    config = AntGridConfig()
    config.calls_per_cycle = 1000
    config.max_cycles = 500
    return config


app = FastAPI(title="Formicary Lattice Viewer")
controller = LatticeController(_viewer_config())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.colony.snapshot()
    return JSONResponse(
        {
            "running": controller.running,
            "cycle": controller.cycle,
            "finished": controller.colony.finished,
            "points": len(controller.points),
            "ants": len(controller.colony.ants),
            "clusters": controller._cluster_count,
            "metrics": asdict(snapshot.metrics) if snapshot.metrics is not None else None,
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "cycle": controller.cycle})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                cycle = payload.get("cycle")
                if isinstance(cycle, int):
                    await controller.acknowledge(cycle)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]

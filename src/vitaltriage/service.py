"""FastAPI service exposing the triage core.

The browser (or any capture collaborator) POSTs averaged ROI colors to
``/ingest``; a background loop runs the analyzer once per
``analysis_interval`` and pushes readings to WebSocket clients. Correlation
and urgency scoring are stateless request/response endpoints.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from . import consolidation, correlation, urgency
from .adapter import adapt_anamnesis, adapt_facial, adapt_voice
from .analyzer import RPPGAnalyzer, RPPGReading
from .buffer import ColorSample
from .config import ServiceSettings

logger = logging.getLogger(__name__)


@dataclass
class State:
    analyzer: RPPGAnalyzer
    latest: Optional[RPPGReading] = None
    ws_clients: set = field(default_factory=set)


class IngestModel(BaseModel):
    t0: float
    dt: float = Field(..., gt=0.0)
    mean_rgb: list[list[float]]


class CorrelationModel(BaseModel):
    voice: Optional[dict[str, Any]] = None
    facial: Optional[dict[str, Any]] = None
    anamnesis: Optional[dict[str, Any]] = None
    symptoms: list[str] = Field(default_factory=list)


class UrgencyModel(BaseModel):
    answers: dict[str, Any] = Field(default_factory=dict)


def reading_dict(reading: RPPGReading) -> dict:
    d = asdict(reading)
    d["quality"] = reading.quality.value
    d["lighting"] = reading.lighting.value
    return d


def correlation_dict(result: correlation.CorrelationResult) -> dict:
    d = asdict(result)
    for inc in d["inconsistencies"]:
        inc["affected_channels"] = sorted(c.value for c in inc["affected_channels"])
    return json.loads(json.dumps(d, default=lambda o: getattr(o, "value", str(o))))


def make_app(settings: ServiceSettings | None = None) -> FastAPI:
    settings = settings or ServiceSettings()
    app = FastAPI(title="vitaltriage", version="0.1.0")
    state = State(analyzer=RPPGAnalyzer(settings.analyzer_config()))
    app.state.triage = state

    loop_task: Optional[asyncio.Task] = None
    lock = asyncio.Lock()

    @app.on_event("startup")
    async def _startup() -> None:  # pragma: no cover - integration
        nonlocal loop_task
        loop_task = asyncio.create_task(process_loop())

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - integration
        nonlocal loop_task
        if loop_task:
            loop_task.cancel()
            try:
                await loop_task
            except asyncio.CancelledError:
                pass
            loop_task = None
        state.analyzer.clear_buffer()

    async def process_loop() -> None:  # pragma: no cover - integration
        while True:
            try:
                await asyncio.sleep(settings.analysis_interval)
                await analysis_step()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("analysis loop iteration failed")
                await asyncio.sleep(0.5)

    async def analysis_step() -> Optional[RPPGReading]:
        """Analyze one buffer snapshot, publish it and push it to clients."""
        # analyze() reads a snapshot, so ingest keeps running meanwhile
        reading = await asyncio.to_thread(state.analyzer.analyze)
        if reading is None:
            return None
        async with lock:
            state.latest = reading
        await broadcast(reading)
        return reading

    async def broadcast(reading: RPPGReading) -> None:
        if not state.ws_clients:
            return
        msg = json.dumps(reading_dict(reading))
        dead: list[WebSocket] = []
        for w in list(state.ws_clients):
            try:
                await w.send_text(msg)
            except Exception:
                logger.debug("dropping websocket client after failed send")
                dead.append(w)
        for w in dead:
            state.ws_clients.discard(w)

    def compute_once() -> Optional[RPPGReading]:
        reading = state.analyzer.analyze()
        if reading is not None:
            state.latest = reading
        return reading

    app.state.compute_once = compute_once
    app.state.analysis_step = analysis_step

    @app.get("/health")
    async def health() -> dict[str, str]:  # pragma: no cover - trivial
        return {"status": "ok"}

    @app.post("/ingest")
    async def post_ingest(payload: IngestModel) -> dict:
        t = payload.t0
        if not payload.mean_rgb:
            return {"status": "empty"}
        count = 0
        async with lock:
            for rgb in payload.mean_rgb:
                if len(rgb) != 3:
                    t += payload.dt
                    continue
                r, g, b = rgb
                state.analyzer.add_reading(ColorSample.clamped(r, g, b, t))
                count += 1
                t += payload.dt
        return {
            "status": "ok",
            "count": count,
            "progress": state.analyzer.buffer_progress(),
        }

    @app.get("/reading")
    async def get_reading() -> dict:
        async with lock:
            latest = state.latest
            progress = state.analyzer.buffer_progress()
        if latest is None:
            return {"status": "warming_up", "progress": progress}
        return {"status": "ok", "progress": progress, "reading": reading_dict(latest)}

    @app.post("/reset")
    async def post_reset() -> dict:
        async with lock:
            state.analyzer.clear_buffer()
            state.latest = None
        return {"status": "ok"}

    @app.post("/correlation")
    async def post_correlation(payload: CorrelationModel) -> dict:
        voice = adapt_voice(payload.voice) if payload.voice is not None else None
        facial = adapt_facial(payload.facial) if payload.facial is not None else None
        anamnesis = adapt_anamnesis(payload.anamnesis) if payload.anamnesis is not None else None
        result = correlation.analyze(voice, facial, anamnesis)
        report = correlation.assess_data_quality(voice, facial, anamnesis)
        out = correlation_dict(result)
        out["trust_description"] = correlation.trust_level_description(result.trust_level)
        out["data_quality"] = asdict(report)
        fused = consolidation.consolidate(voice, facial, anamnesis, result, payload.symptoms)
        out["consolidated"] = asdict(fused)
        return out

    @app.post("/urgency")
    async def post_urgency(payload: UrgencyModel) -> dict:
        assessment = urgency.score(payload.answers)
        out = asdict(assessment)
        out["level"] = assessment.level.value
        out["summary"] = urgency.summarize(assessment, payload.answers)
        return out

    @app.websocket("/ws")
    async def ws_readings(ws: WebSocket) -> None:  # pragma: no cover - integration
        await ws.accept()
        state.ws_clients.add(ws)
        try:
            while True:
                # keep alive; updates are pushed from the loop
                await ws.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            state.ws_clients.discard(ws)

    return app


def configure_logging(settings: ServiceSettings) -> None:
    logs_dir = Path(settings.log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=[
            logging.FileHandler(logs_dir / "app.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )


def main() -> None:  # pragma: no cover - manual run helper
    import uvicorn

    settings = ServiceSettings()
    configure_logging(settings)
    logger.info("starting vitaltriage on %s:%d", settings.host, settings.port)
    uvicorn.run(make_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":  # pragma: no cover
    main()

"""FastAPI edge: POST /api/chat streams NDJSON progress events."""

import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from src.pipeline import PipelineOrchestrator
from src.protocol import MalformedRequestError, encode_ndjson, parse_request

logger = logging.getLogger(__name__)


def create_app(orchestrator: PipelineOrchestrator) -> FastAPI:
    """Build the app around one orchestrator; its feedback store lives as long as the app."""
    app = FastAPI(title="Model Chorus")
    app.state.orchestrator = orchestrator

    @app.post("/api/chat")
    async def chat(request: Request):
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse({"error": "Request body must be valid JSON"}, status_code=400)
        try:
            parsed = parse_request(payload)
        except MalformedRequestError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)

        pipeline: PipelineOrchestrator = request.app.state.orchestrator

        async def body() -> AsyncIterator[str]:
            events = pipeline.handle(parsed)
            try:
                async for event in events:
                    yield encode_ndjson(event)
            finally:
                await events.aclose()

        return StreamingResponse(body(), media_type="application/x-ndjson")

    @app.get("/api/health")
    async def health(request: Request):
        pipeline: PipelineOrchestrator = request.app.state.orchestrator
        return {
            "status": "ok",
            "strategy": pipeline.strategy.name,
            "panel": [p.spec().id for p in pipeline.providers],
        }

    return app

"""HTTP API over the price store.

Routes:
    GET /health                      -> 200 healthy / 503 when no fresh data at all
    GET /api/v1/price/{base}/{quote} -> best fresh price, 503 when none
    GET /metrics                     -> Prometheus text exposition
"""

from __future__ import annotations

from datetime import datetime

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .FeedMetrics import FeedMetrics
from .freshness import utc_now
from .PriceStore import PriceStore
from .TradingPair import TradingPair


class PriceResponse(BaseModel):
    pair: str
    price: str
    source: str
    fallback_used: bool
    timestamp: datetime


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    reason: str | None = None


class ErrorResponse(BaseModel):
    error: str


def create_app(store: PriceStore, metrics: FeedMetrics) -> FastAPI:
    """Build the FastAPI application.

    :param store: Price store to read from.
    :param metrics: Metrics instance to expose and count requests in.
    :returns: Configured FastAPI app.
    """
    app = FastAPI(title="Rate Relay", docs_url=None, redoc_url=None)

    @app.get("/health", response_model=HealthResponse)
    async def health():
        if store.has_fresh_data():
            body = HealthResponse(status="healthy", timestamp=utc_now())
            return JSONResponse(
                status_code=200,
                content=body.model_dump(mode="json", exclude_none=True),
            )

        body = HealthResponse(
            status="unhealthy",
            timestamp=utc_now(),
            reason="No fresh price data available",
        )
        return JSONResponse(status_code=503, content=body.model_dump(mode="json"))

    @app.get("/api/v1/price/{base}/{quote}", response_model=PriceResponse)
    async def get_price(base: str, quote: str):
        metrics.record_http_request(f"/api/v1/price/{base}/{quote}")
        pair = f"{base.upper()}/{quote.upper()}"

        try:
            pair = str(TradingPair(base, quote))
            best = store.get_best(pair)
        except ValueError:
            best = None

        if best is None:
            body = ErrorResponse(error=f"No price data available for {pair}")
            return JSONResponse(status_code=503, content=body.model_dump())

        observation = best.observation
        body = PriceResponse(
            pair=observation.pair,
            price=str(observation.price),
            source=observation.source,
            fallback_used=best.fallback_used,
            timestamp=observation.timestamp,
        )
        return JSONResponse(status_code=200, content=body.model_dump(mode="json"))

    @app.get("/metrics")
    async def metrics_endpoint():
        return Response(content=metrics.encode(), media_type=FeedMetrics.CONTENT_TYPE)

    return app

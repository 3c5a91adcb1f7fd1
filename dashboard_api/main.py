from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Dict, List, Literal, Optional

import httpx
import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dashboard_api.schemas import StatusResponse, ViewQueryModel
from dashboard_core.data import load_dashboard_data
from dashboard_core.filters import ViewParams, normalize_view_params
from dashboard_core.metrics_gp import (
    GP_SORT_KEYS,
    compute_country_segment,
    compute_gp_overview,
    top_segments,
    top_segments_chart,
)
from dashboard_core.metrics_orders import (
    ORDER_SORT_KEYS,
    PRODUCT_SORT_KEYS,
    compute_order_analysis,
    compute_product_sales_view,
    top_products,
    top_products_chart,
)
from dashboard_core.metrics_reserve import RESERVE_SORT_KEYS, compute_reserve
from dashboard_core.models import DashboardSnapshot
from dashboard_core.refresh import REFRESH_INTERVAL_SECONDS, DashboardState, Loader, RefreshOrchestrator

logger = logging.getLogger(__name__)


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def status_payload(state: DashboardState, interval: float) -> Dict[str, Any]:
    model = StatusResponse(
        status=state.status.value,
        error=state.error,
        empty_message=state.empty_message,
        last_updated=state.last_updated,
        refreshing=state.refreshing,
        refresh_interval_seconds=interval,
        row_counts=state.snapshot.row_counts() if state.snapshot is not None else {},
    )
    return model.model_dump(mode="json")


def view_query(
    sort_key: Optional[str] = Query(default=None),
    direction: Optional[Literal["ascending", "descending", "asc", "desc"]] = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=200),
    top_n: int = Query(default=10, ge=1, le=200),
) -> ViewQueryModel:
    return ViewQueryModel(sort_key=sort_key, direction=direction, page=page, page_size=page_size, top_n=top_n)


def _params_from_model(model: ViewQueryModel, *, allowed_keys: List[str], default_key: str) -> ViewParams:
    raw = model.model_dump()
    return normalize_view_params(raw, allowed_keys=allowed_keys, default_key=default_key, default_descending=True)


def _orchestrator(request: Request) -> RefreshOrchestrator:
    return request.app.state.orchestrator


def _current_snapshot(request: Request) -> tuple[Optional[DashboardSnapshot], Optional[JSONResponse]]:
    orchestrator = _orchestrator(request)
    state = orchestrator.state
    if state.snapshot is None:
        # nothing good yet: loading, or the first cycle failed
        return None, _json(status_payload(state, orchestrator.interval), status_code=503)
    return state.snapshot, None


def create_app(loader: Optional[Loader] = None, *, interval: float = REFRESH_INTERVAL_SECONDS, auto_refresh: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client: Optional[httpx.AsyncClient] = None
        cycle_loader = loader
        if cycle_loader is None:
            client = httpx.AsyncClient(follow_redirects=True)

            async def cycle_loader() -> DashboardSnapshot:
                return await load_dashboard_data(client)

        orchestrator = RefreshOrchestrator(cycle_loader, interval=interval)
        app.state.orchestrator = orchestrator
        if auto_refresh:
            orchestrator.start()
        try:
            yield
        finally:
            await orchestrator.stop()
            if client is not None:
                await client.aclose()

    app = FastAPI(title="Sales Sheets Dashboard API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/status")
    def status(request: Request):
        orchestrator = _orchestrator(request)
        return _json(status_payload(orchestrator.state, orchestrator.interval))

    @app.post("/refresh")
    async def refresh(request: Request):
        orchestrator = _orchestrator(request)
        state = await orchestrator.refresh()
        return _json(status_payload(state, orchestrator.interval))

    @app.get("/reserve-orders")
    def reserve_orders(request: Request, view: ViewQueryModel = Depends(view_query)):
        snapshot, not_ready = _current_snapshot(request)
        if not_ready is not None:
            return not_ready
        try:
            params = _params_from_model(view, allowed_keys=RESERVE_SORT_KEYS, default_key="date")
            return _json(compute_reserve(snapshot.reserve_orders, params))
        except Exception as exc:
            logger.exception("reserve_orders failed")
            return _error(exc)

    @app.get("/gp-records")
    def gp_records(request: Request, view: ViewQueryModel = Depends(view_query)):
        snapshot, not_ready = _current_snapshot(request)
        if not_ready is not None:
            return not_ready
        try:
            params = _params_from_model(view, allowed_keys=GP_SORT_KEYS, default_key="gp")
            return _json(compute_gp_overview(snapshot.gp_records, params))
        except Exception as exc:
            logger.exception("gp_records failed")
            return _error(exc)

    @app.get("/gp/top-segments")
    def gp_top_segments(request: Request, top_n: int = Query(default=10, ge=1, le=200)):
        snapshot, not_ready = _current_snapshot(request)
        if not_ready is not None:
            return not_ready
        try:
            ranked = top_segments(snapshot.gp_records, top_n)
            return _json({"top_segments": [asdict(r) for r in ranked], "charts": {"top_segments": top_segments_chart(ranked)}})
        except Exception as exc:
            logger.exception("gp_top_segments failed")
            return _error(exc)

    @app.get("/gp/country-segment")
    def gp_country_segment(request: Request):
        snapshot, not_ready = _current_snapshot(request)
        if not_ready is not None:
            return not_ready
        try:
            return _json(compute_country_segment(snapshot.gp_records))
        except Exception as exc:
            logger.exception("gp_country_segment failed")
            return _error(exc)

    @app.get("/orders")
    def orders(request: Request, view: ViewQueryModel = Depends(view_query)):
        snapshot, not_ready = _current_snapshot(request)
        if not_ready is not None:
            return not_ready
        try:
            params = _params_from_model(view, allowed_keys=ORDER_SORT_KEYS, default_key="date")
            return _json(compute_order_analysis(snapshot.combined_orders, params))
        except Exception as exc:
            logger.exception("orders failed")
            return _error(exc)

    @app.get("/orders/products")
    def order_products(request: Request, view: ViewQueryModel = Depends(view_query)):
        snapshot, not_ready = _current_snapshot(request)
        if not_ready is not None:
            return not_ready
        try:
            params = _params_from_model(view, allowed_keys=PRODUCT_SORT_KEYS, default_key="total_quantity")
            return _json(compute_product_sales_view(snapshot.combined_orders, params))
        except Exception as exc:
            logger.exception("order_products failed")
            return _error(exc)

    @app.get("/orders/top-products")
    def orders_top_products(request: Request, top_n: int = Query(default=10, ge=1, le=200)):
        snapshot, not_ready = _current_snapshot(request)
        if not_ready is not None:
            return not_ready
        try:
            ranked = top_products(snapshot.combined_orders, top_n)
            return _json({"top_products": [asdict(r) for r in ranked], "charts": {"top_products": top_products_chart(ranked)}})
        except Exception as exc:
            logger.exception("orders_top_products failed")
            return _error(exc)

    return app


app = create_app()

"""FastAPI server exposing fault context, cluster computation and cluster definitions."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from quakescope.errors import QuakeScopeError
from quakescope.tools.config_loader import get_settings

from .schemas.models import CalculateClustersRequest, ClusterDefinitionAck, ClusterDefinitionPayload
from .services import Services, build_services


logger = logging.getLogger(__name__)


def get_services(request: Request) -> Services:
    return request.app.state.services


# -----------------------------
# Error handlers
# -----------------------------

async def _engine_error(request: Request, exc: QuakeScopeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        content = {"error": "Invalid JSON payload for the request.", "details": jsonable_encoder(errors)}
    else:
        content = {"error": "Invalid request", "details": jsonable_encoder(errors)}
    return JSONResponse(status_code=400, content=content)


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# -----------------------------
# App factory
# -----------------------------

def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the app. Without ``services``, they are built from the active
    profile at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.services is None
        if owned:
            settings = get_settings()
            logging.basicConfig(
                level=getattr(logging, settings.log_level.upper(), logging.INFO),
                format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            )
            app.state.services = build_services(settings)
        try:
            yield
        finally:
            if owned:
                app.state.services.close()
                app.state.services = None

    app = FastAPI(title="QuakeScope API", version="0.1.0", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Cache", "X-Cache-Hit", "X-Data-Source"],
    )

    app.add_exception_handler(QuakeScopeError, _engine_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Exception, _unexpected_error)

    @app.get("/health")
    def health_check() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/fault-context/{event_id}")
    def fault_context(
        event_id: str,
        radius: Optional[float] = Query(default=None, description="Search radius in km"),
        limit: Optional[int] = Query(default=None, description="Maximum faults returned"),
        services: Services = Depends(get_services),
    ) -> Response:
        settings = services.settings
        result = services.fault_context.get_fault_context(
            event_id,
            radius if radius is not None else settings.fault_search_radius_km,
            limit if limit is not None else settings.fault_result_limit,
        )
        return Response(
            content=result.body,
            media_type="application/json",
            headers={
                "X-Cache": "HIT" if result.cache_hit else "MISS",
                "X-Data-Source": "FaultContext-Cached" if result.cache_hit else "FaultContext",
            },
        )

    @app.post("/api/calculate-clusters")
    def calculate_clusters(
        request: CalculateClustersRequest,
        services: Services = Depends(get_services),
    ) -> Response:
        result = services.clusters.compute(request.earthquakes, request.max_distance_km, request.min_quakes)
        return Response(
            content=result.body,
            media_type="application/json",
            headers={"X-Cache-Hit": "true" if result.cache_hit else "false"},
        )

    @app.post("/api/cluster-definition", status_code=201, response_model=ClusterDefinitionAck)
    def register_cluster_definition(
        payload: ClusterDefinitionPayload,
        services: Services = Depends(get_services),
    ) -> Dict[str, Any]:
        stored = services.registry.register(payload.to_registration())
        return {
            "message": f"Cluster definition for {stored.id} registered/updated successfully.",
            "definition": stored.to_dict(),
        }

    @app.get("/api/cluster-definition")
    def get_cluster_definition(
        id: Optional[str] = Query(default=None, description="Cluster definition id"),
        services: Services = Depends(get_services),
    ) -> Dict[str, Any]:
        return services.registry.retrieve(id).to_dict()

    @app.get("/api/cluster-definition/by-slug/{slug}")
    def get_cluster_definition_by_slug(
        slug: str,
        services: Services = Depends(get_services),
    ) -> Dict[str, Any]:
        return services.registry.retrieve_by_slug(slug).to_dict()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)

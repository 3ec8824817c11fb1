"""
API gateway routes: health, service discovery and the prefix proxy.
"""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.schemas import ServiceDiscoveryResponse, ServiceInfo
from app.services.gateway import (
    ServiceClient,
    ServiceName,
    get_service_client,
    resolve_prefix,
    routes_for,
)
from app.services.gateway.client import HOP_BY_HOP_HEADERS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gateway", tags=["Gateway"])

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

# httpx has already decoded the body, and Response sets its own length
DROPPED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {"content-encoding"}


@router.get("/health")
async def gateway_health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": "api-gateway",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
    }


@router.get("/services", response_model=ServiceDiscoveryResponse, summary="Service Discovery")
async def list_services(client: ServiceClient = Depends(get_service_client)) -> ServiceDiscoveryResponse:
    settings = get_settings()
    return ServiceDiscoveryResponse(
        services=[
            ServiceInfo(
                name=f"{service.value}-service",
                url=client.configured_url(service),
                routes=routes_for(service),
            )
            for service in ServiceName
        ],
        gateway={"version": settings.app_version, "environment": settings.env_mode.value},
    )


async def _proxy(request: Request, prefix: str, path: str, client: ServiceClient) -> Response:
    service = resolve_prefix(prefix)
    if service is None:
        raise HTTPException(status_code=404, detail=f"No service handles /{prefix}")

    try:
        upstream = await client.forward(
            service,
            request.method,
            path,
            headers=request.headers,
            params=request.query_params.multi_items(),
            content=await request.body(),
        )
    except (httpx.TransportError, ValueError) as e:
        logger.error(f"Gateway: {request.method} /{prefix}/{path} failed: {e}")
        body = {"error": "Bad Gateway", "message": "Unable to connect to the target service"}
        if get_settings().debug:
            body["details"] = str(e)
        return JSONResponse(status_code=502, content=body)

    response = Response(content=upstream.content, status_code=upstream.status_code)
    # Repeated headers (Set-Cookie) stay separate
    for key, value in upstream.headers.multi_items():
        if key.lower() not in DROPPED_RESPONSE_HEADERS:
            response.headers.append(key, value)
    return response


@router.api_route("/{prefix}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy_root(
    prefix: str,
    request: Request,
    client: ServiceClient = Depends(get_service_client),
) -> Response:
    return await _proxy(request, prefix, "", client)


@router.api_route("/{prefix}/{path:path}", methods=PROXY_METHODS, summary="Proxy to Service")
async def proxy(
    prefix: str,
    path: str,
    request: Request,
    client: ServiceClient = Depends(get_service_client),
) -> Response:
    return await _proxy(request, prefix, path, client)

"""
Dependency providers

Expose the objects owned by the application (settings, shared HTTP client,
allow-list) to route handlers through FastAPI's dependency injection, so
tests can build an app around their own instances.
"""
from typing import Annotated

import httpx
from fastapi import Depends, Request

from iptv_gateway.config import CustomSettings
from iptv_gateway.services.allowlist_service import AllowedDomains


def get_settings(request: Request) -> CustomSettings:
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Shared upstream client created in the application lifespan"""
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        raise RuntimeError("HTTP client not initialized. Is the application lifespan running?")
    return client


def get_allowed_domains(request: Request) -> AllowedDomains:
    return request.app.state.allowed_domains


SettingsDep = Annotated[CustomSettings, Depends(get_settings)]
HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]
AllowedDomainsDep = Annotated[AllowedDomains, Depends(get_allowed_domains)]

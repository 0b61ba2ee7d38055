"""Pass-through HTTP relay for reaching the issue tracker from a browser.

Endpoints:
    GET  /        health payload
    POST /proxy   {url, method?, headers?, body?} -> {ok, status, statusText, data}

An upstream 204, 205 or 304 is answered with that status and an empty body.

Requests are forwarded as-is, one at a time, with no retry. Nothing is
stored; only the method, URL and resulting status are logged.
"""

import json
import logging
from typing import Any

import requests
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from a11y_report import __version__

logger = logging.getLogger(__name__)

# Statuses that must not carry a response body
BODILESS_STATUSES = (204, 205, 304)


# ---------------------------------------------------------------------------
# Forwarding
# ---------------------------------------------------------------------------

def send(
    url: str,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    body: Any = None,
    timeout: float | None = None,
    session: requests.Session | None = None,
) -> tuple[int, dict[str, Any]]:
    """Send one request and return ``(status_code, payload)``.

    ``payload["data"]`` is the decoded JSON body when the response declares
    ``application/json``, otherwise the raw text.

    Raises:
        requests.exceptions.RequestException: the request could not be sent
    """
    method = (method or "GET").upper()
    sender = session or requests
    logger.info("[relay] %s %s", method, url)

    response = sender.request(
        method,
        url,
        headers=headers or {},
        data=json.dumps(body) if body is not None else None,
        timeout=timeout,
    )

    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = response.json()
        except ValueError:
            data = response.text
    else:
        data = response.text

    logger.info("[relay] Response: %s", response.status_code)
    return response.status_code, {
        "ok": 200 <= response.status_code < 300,
        "status": response.status_code,
        "statusText": response.reason or "",
        "data": data,
    }


def forward(
    url: str,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    body: Any = None,
    timeout: float | None = None,
    session: requests.Session | None = None,
) -> tuple[int, dict[str, Any]]:
    """Like send(), but never raises for network failures.

    A request that cannot be sent at all yields status 500 with
    ``{"error": <message>}`` as data.
    """
    try:
        return send(url, method, headers, body, timeout=timeout, session=session)
    except requests.exceptions.RequestException as exc:
        logger.error("[relay] %s %s failed: %s", method, url, exc)
        return 500, {
            "ok": False,
            "status": 500,
            "statusText": "Internal Server Error",
            "data": {"error": str(exc) or exc.__class__.__name__},
        }


# ---------------------------------------------------------------------------
# HTTP app
# ---------------------------------------------------------------------------

class ProxyRequest(BaseModel):
    url: str | None = None
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None


def create_app(timeout: float | None = None) -> FastAPI:
    app = FastAPI(title="a11y-report tracker relay", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def health() -> dict[str, str]:
        return {
            "status": "ok",
            "message": "Tracker relay is running",
            "version": __version__,
            "privacy": "No data is collected or stored. "
                       "All requests are forwarded directly to the tracker.",
        }

    @app.post("/proxy")
    def proxy(request: ProxyRequest) -> Response:
        if not request.url:
            return JSONResponse(status_code=400, content={"error": "Missing URL parameter"})
        status, payload = forward(
            request.url,
            method=request.method,
            headers=request.headers,
            body=request.body,
            timeout=timeout,
        )
        if status < 200 or status in BODILESS_STATUSES:
            return Response(status_code=status)
        return JSONResponse(status_code=status, content=payload)

    return app

#!/usr/bin/env python3
"""
Sample Python Web App

FastAPI application deployed onto the EC2 instance by
configure_amz_linux_sample_app.sh. Runs under uvicorn behind nginx.
- GET /         greeting with instance details
- GET /health   liveness probe for nginx / operators
- GET /metrics  Prometheus exposition
"""

import logging
import os
import socket
import time
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from metrics import METRICS, REGISTRY

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("sample_app")

app = FastAPI(title="Sample Python Web App")
STARTED_AT = datetime.now()
UNMATCHED_ENDPOINT = "unmatched"

PAGE = """<!DOCTYPE html>
<html>
<head><title>Sample Python Web App</title></head>
<body>
<h1>Hello from {hostname}</h1>
<p>Public address: {public_address}</p>
<p>Up since {started_at}</p>
</body>
</html>
"""


def instance_info() -> dict:
    return {
        "hostname": socket.gethostname(),
        "public_address": os.getenv("PUBLIC_ADDRESS", "unknown"),
        "started_at": STARTED_AT.isoformat(timespec="seconds"),
    }


def endpoint_label(request: Request) -> str:
    """Label by route template so unknown paths share one series."""
    route = request.scope.get("route")
    return route.path if route is not None else UNMATCHED_ENDPOINT


@app.middleware("http")
async def prometheus_middleware(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed_ms = (time.time() - start) * 1000
    endpoint = endpoint_label(request)
    METRICS["http_requests"].labels(
        method=request.method, endpoint=endpoint, status=str(response.status_code)
    ).inc()
    METRICS["request_latency"].labels(endpoint=endpoint).observe(elapsed_ms)
    return response


@app.get("/", response_class=HTMLResponse)
def index():
    return PAGE.format(**instance_info())


@app.get("/api/info")
def info():
    return instance_info()


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/metrics")
def metrics():
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


@app.on_event("startup")
def log_startup():
    logger.info(f"Sample app starting on {socket.gethostname()} (public address {os.getenv('PUBLIC_ADDRESS', 'unknown')})")

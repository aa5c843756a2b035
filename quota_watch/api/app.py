"""
HTTP API for Quota Watch.

Serves the usage report as JSON for the monitoring dashboard.

Environment variables:
- VERCEL_TOKEN, VERCEL_TEAM_ID: required, the report fails with 500 without them
- OPENAI_ADMIN_KEY, OPENAI_PROJECT_ID: optional, the OpenAI summary is zeroed without them
- QUOTA_WATCH_CONFIG: optional path to a YAML monitor configuration

Run (example):
  VERCEL_TOKEN=... VERCEL_TEAM_ID=... \
  python -m uvicorn quota_watch.api.app:app --port 8080
"""

import logging
from typing import Any, Dict

import httpx
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from quota_watch.config.loader import Credentials, MissingCredentialsError, get_monitor_config
from quota_watch.core.report import build_report

logger = logging.getLogger(__name__)

app = FastAPI(title="Quota Watch", version="0.1.0")


def _build_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout)


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": message})


@app.get("/api/data")
async def report_data():
    credentials = Credentials.from_env()
    try:
        credentials.require_primary()
    except MissingCredentialsError as e:
        return _error(str(e))

    config = get_monitor_config()
    try:
        async with _build_client(config.request_timeout) as client:
            return await build_report(credentials, config, client)
    except Exception as e:  # noqa: BLE001
        logger.exception("Report generation failed")
        return _error(str(e))


@app.get("/health")
async def health() -> Dict[str, Any]:
    return {"status": "ok"}

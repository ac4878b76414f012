from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum
from pydantic import BaseModel, Field

from hodlers.aggregation import FetchPage, aggregate_holders
from hodlers.alchemy import AlchemyOwnersClient
from hodlers.config import Settings, redact_endpoint
from hodlers.errors import ConfigurationError, InvalidRequest, UpstreamFailure
from hodlers.normalize import normalize_collection_ids

_SETTINGS = Settings.from_env()
_LOGGER = logging.getLogger("hodlers.api")
_LOGGER.setLevel(logging.INFO)


class HoldersRequest(BaseModel):
    contracts: Optional[Any] = Field(
        default=None,
        description="Contract addresses to aggregate holders for.",
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _owners_client() -> FetchPage:
    client = AlchemyOwnersClient.from_settings(_SETTINGS)
    _LOGGER.info("holders endpoint=%s", redact_endpoint(client.endpoint))
    return client


app = FastAPI(
    title="Hodlers API",
    version="0.1",
    root_path=_SETTINGS.root_path,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_http_request(request, call_next):
    _LOGGER.info(
        "http request method=%s path=%s client=%s",
        request.method,
        request.url.path,
        request.client.host if request.client else "unknown",
    )
    response = await call_next(request)
    _LOGGER.info("http response status=%s path=%s", response.status_code, request.url.path)
    return response


@app.exception_handler(RequestValidationError)
async def _validation_error(request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "Must include a non-empty array `contracts`.")


@app.on_event("startup")
def _log_startup() -> None:
    _LOGGER.info(
        "startup network=%s page_limit=%s timeout=%s max_pages=%s api_key=%s",
        _SETTINGS.network,
        _SETTINGS.page_limit,
        _SETTINGS.timeout,
        _SETTINGS.max_pages,
        "LOADED" if _SETTINGS.api_key else "NOT LOADED",
    )


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/api/holders")
def holders(
    req: HoldersRequest,
    accumulate_breakdown: bool = Query(False),
):
    try:
        contracts = normalize_collection_ids(req.contracts)
    except InvalidRequest as exc:
        return _error(400, str(exc))
    _LOGGER.info(
        "holders start contracts=%s accumulate_breakdown=%s",
        len(contracts),
        accumulate_breakdown,
    )
    try:
        fetch_page = _owners_client()
    except ConfigurationError as exc:
        _LOGGER.error("holders config error=%s", exc)
        return _error(500, str(exc))
    try:
        result = aggregate_holders(
            contracts,
            fetch_page,
            accumulate_breakdown=accumulate_breakdown,
            max_pages=_SETTINGS.max_pages,
        )
    except UpstreamFailure as exc:
        return _error(500, str(exc))
    finally:
        close = getattr(fetch_page, "close", None)
        if close is not None:
            close()
    _LOGGER.info(
        "holders complete contracts=%s wallets=%s",
        result.total_contracts,
        len(result.wallets),
    )
    return result.to_dict()


_MANGUM_HANDLER = Mangum(app)


def handler(event, context):
    request_context = event.get("requestContext", {}) if isinstance(event, dict) else {}
    http_ctx = request_context.get("http", {}) if isinstance(request_context, dict) else {}
    _LOGGER.info(
        "lambda event method=%s path=%s stage=%s source=%s",
        http_ctx.get("method"),
        event.get("rawPath") if isinstance(event, dict) else None,
        request_context.get("stage"),
        http_ctx.get("sourceIp"),
    )
    return _MANGUM_HANDLER(event, context)

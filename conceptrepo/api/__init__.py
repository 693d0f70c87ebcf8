"""Concept repository API: store concepts in a GitHub repository and keep them indexed."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from conceptrepo.api.auth import app_auth
from conceptrepo.api.concepts import app_concepts
from conceptrepo.api.info import app_info
from conceptrepo.config import get_settings
from conceptrepo.errors import AllocationExhausted, ContentStoreError, RateLimited, SecretNotConfigured

app = FastAPI(
    title="Concept repository",
    description=__doc__ if __doc__ else "",
    openapi_tags=[
        dict(name="auth", description="GitHub login and user information"),
        dict(name="concepts", description="Endpoints to store, retrieve, index, and search concepts"),
        dict(name="informational", description="Server information"),
    ],
)
app.include_router(app_info)
app.include_router(app_auth)
app.include_router(app_concepts)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "PUT", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.exception_handler(ContentStoreError)
async def content_store_exception_handler(request: Request, exc: ContentStoreError):
    logging.warning(f"{request.method} {request.url.path} failed: {exc!r}")
    headers = {}
    if isinstance(exc, RateLimited) and exc.retry_after is not None:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc)}, headers=headers)


@app.exception_handler(AllocationExhausted)
@app.exception_handler(SecretNotConfigured)
async def server_exception_handler(request: Request, exc: AllocationExhausted | SecretNotConfigured):
    logging.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc)})


@app.exception_handler(ValueError)
async def value_error_exception_handler(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=400,
        content={"message": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc) -> JSONResponse:
    # ctx can hold the exception raised by a validator, which is not serializable
    fields = [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]
    return JSONResponse(
        status_code=422, content={"message": "There was an issue with the data you sent.", "fields_invalid": fields}
    )

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from relayer_loader.core.dependencies import LoaderDep
from relayer_loader.loader.errors import (
    EnvironmentUnavailableError,
    LoaderError,
    LoadNetworkError,
    LoadTimeoutError,
    ShapeInvalidError,
)
from relayer_loader.schemas.sdk import CancelResponse, LoadResponse, SdkStatus

_log = logging.getLogger(__name__)

router = APIRouter(prefix='/sdk', tags=['sdk'])

_ERROR_STATUS: tuple[tuple[type[LoaderError], int], ...] = (
    (EnvironmentUnavailableError, 503),
    (LoadTimeoutError, 504),
    (LoadNetworkError, 502),
    (ShapeInvalidError, 502),
)


def _status_code_for(exc: LoaderError) -> int:
    for exc_type, code in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            return code
    return 500


@router.get('/status', response_model=SdkStatus)
async def sdk_status(loader: LoaderDep) -> SdkStatus:
    try:
        loaded = loader.is_loaded()
        available = True
    except EnvironmentUnavailableError:
        loaded = False
        available = False
    return SdkStatus(
        environment_available=available,
        loaded=loaded,
        in_flight=loader.in_flight,
        source_url=loader.source_url,
        namespace_key=loader.namespace_key,
        injections=loader.injections,
        options=loader.options,
        last_outcome=loader.last_outcome,
    )


@router.post('/load', response_model=LoadResponse)
async def sdk_load(loader: LoaderDep) -> LoadResponse:
    """Run load() and report its outcome; failures map to 5xx responses."""
    try:
        outcome = await loader.load()
    except LoaderError as exc:
        _log.info("sdk load failed: %s", exc)
        raise HTTPException(status_code=_status_code_for(exc), detail=exc.outcome().summary()) from exc
    return LoadResponse(outcome=outcome, loaded=outcome.ok)


@router.post('/cancel', response_model=CancelResponse)
async def sdk_cancel(loader: LoaderDep) -> CancelResponse:
    return CancelResponse(cancelled=loader.cancel())

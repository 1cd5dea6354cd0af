from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relayer_loader.api import sdk as sdk_router
from relayer_loader.core.config import settings
from relayer_loader.core.logging_config import configure_logging
from relayer_loader.loader.document import ScriptNode
from relayer_loader.loader.resource_loader import ResourceLoader

_log = logging.getLogger(__name__)


def _log_document_event(event: str, node: ScriptNode) -> None:
    _log.debug("script %s: %s (%s)", event, node.src, node.state.value)


def create_app(loader: ResourceLoader | None = None, *, load_on_startup: bool = False) -> FastAPI:
    """Build the diagnostics app around ``loader``.

    Without a loader the app reports an unavailable page environment; hosts
    that own a page context pass their own loader.
    """
    if loader is None:
        loader = ResourceLoader.from_settings(None)
    if loader.page is not None:
        loader.page.document.on_event(_log_document_event)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        for line in settings.diagnostics or []:
            _log.info("[config] %s", line)
        if load_on_startup:
            try:
                outcome = await loader.load()
                _log.info("startup load finished: %s", outcome.status.value)
            except Exception as exc:
                # Startup keeps going; /sdk/status reports the failure.
                _log.warning("startup load failed: %s", exc)

        yield

        page = loader.page
        if page is not None:
            await page.document.close()

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.loader = loader
    app.include_router(sdk_router.router, prefix=settings.api_v1_prefix)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    @app.get('/')
    async def root():
        return {'status': 'ok', 'app': settings.app_name, 'version': settings.version}

    return app


app = create_app()

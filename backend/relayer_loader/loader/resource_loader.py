from __future__ import annotations

import asyncio
import enum
import logging
from typing import Optional

from relayer_loader.core.config import settings
from relayer_loader.loader.document import ScriptNode
from relayer_loader.loader.errors import (
    EnvironmentUnavailableError,
    FallbackImportError,
    LoaderError,
    LoadNetworkError,
    LoadTimeoutError,
    ShapeInvalidError,
)
from relayer_loader.loader.fallback import install_fallback
from relayer_loader.loader.models import (
    CancelToken,
    LoadAttempt,
    LoaderOptions,
    LoaderOutcome,
    OutcomeSource,
    OutcomeStatus,
)
from relayer_loader.loader.page import GlobalNamespace, PageContext
from relayer_loader.loader.shape import DEFAULT_SHAPE, CapabilityShape, check_capability, check_namespace
from relayer_loader.loader.trace import TraceSink, emit_trace

_log = logging.getLogger(__name__)


class _AttemptResult(enum.Enum):
    loaded = 'loaded'
    timeout = 'timeout'
    error = 'error'
    shape_invalid = 'shape_invalid'
    cancelled = 'cancelled'


class ResourceLoader:
    """Idempotently installs the relayer SDK capability into a page namespace.

    ``load()`` injects the SDK script, waits for it to settle, validates what
    it registered and retries within a bounded attempt budget. Concurrent
    callers share a single in-flight acquisition.
    """

    def __init__(
        self,
        page: PageContext | None,
        *,
        source_url: str | None = None,
        namespace_key: str | None = None,
        options: LoaderOptions | None = None,
        shape: CapabilityShape = DEFAULT_SHAPE,
        trace: Optional[TraceSink] = None,
        fallback_module: str | None = None,
    ) -> None:
        self._page = page
        self.source_url = source_url or settings.sdk_url
        self.namespace_key = namespace_key or settings.namespace_key
        self.options = options or LoaderOptions()
        self.shape = shape
        self.fallback_module = fallback_module
        self._trace = trace
        self._inflight: asyncio.Task[LoaderOutcome] | None = None
        self._token: CancelToken | None = None
        self.last_outcome: LoaderOutcome | None = None
        self.injections = 0

    @classmethod
    def from_settings(cls, page: PageContext | None, *, trace: Optional[TraceSink] = None) -> ResourceLoader:
        return cls(
            page,
            source_url=settings.sdk_url,
            namespace_key=settings.namespace_key,
            options=LoaderOptions(),
            trace=trace,
            fallback_module=settings.fallback_module,
        )

    # --- environment --------------------------------------------------
    def _require_page(self) -> PageContext:
        if self._page is None:
            raise EnvironmentUnavailableError("ResourceLoader: can only be used with a page context.")
        return self._page

    def _namespace(self, page: PageContext) -> GlobalNamespace:
        return page.namespace(self.namespace_key)

    @property
    def page(self) -> PageContext | None:
        return self._page

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def is_loaded(self) -> bool:
        page = self._require_page()
        return check_namespace(page.globals, self.namespace_key, self._trace, shape=self.shape)

    # --- public entry points ------------------------------------------
    async def load(self, cancel_token: CancelToken | None = None) -> LoaderOutcome:
        """Ensure the capability is installed.

        Returns an ``already_satisfied``, ``loaded`` or ``cancelled`` outcome
        and raises a LoaderError subclass once the attempt budget runs out.
        A call made while another load is running joins it; its token is
        ignored in that case.
        """
        task = self._inflight
        if task is not None and not task.done():
            _log.debug("joining in-flight load of %s", self.source_url)
            return await asyncio.shield(task)

        page = self._require_page()
        token = cancel_token or CancelToken()
        task = asyncio.get_running_loop().create_task(self._run(page, token))
        self._inflight = task
        self._token = token
        task.add_done_callback(self._finish_flight)
        return await asyncio.shield(task)

    def cancel(self) -> bool:
        """Request cancellation of the in-flight load, if any."""
        if not self.in_flight or self._token is None:
            return False
        self._token.request()
        return True

    def _finish_flight(self, task: asyncio.Task[LoaderOutcome]) -> None:
        if self._inflight is task:
            self._inflight = None
            self._token = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            self.last_outcome = task.result()
        elif isinstance(exc, LoaderError):
            self.last_outcome = exc.outcome()

    # --- state machine ------------------------------------------------
    async def _run(self, page: PageContext, token: CancelToken) -> LoaderOutcome:
        namespace = self._namespace(page)
        if namespace.present():
            if check_capability(namespace.get(), self._trace, shape=self.shape):
                emit_trace(self._trace, f"ResourceLoader: {self.namespace_key} already loaded")
                return LoaderOutcome(status=OutcomeStatus.already_satisfied)
            _log.info("%s is invalid, clearing and reloading", self.namespace_key)
            emit_trace(self._trace, f"ResourceLoader: clearing invalid {self.namespace_key}")
            namespace.clear()

        attempt = LoadAttempt(0, self.options.max_attempts)
        while True:
            if token.is_cancelled():
                return self._cancelled(attempt.index)
            _log.debug("attempt %s for %s", attempt.describe(), self.source_url)
            emit_trace(self._trace, f"ResourceLoader: attempt {attempt.describe()}")
            result = await self._attempt(page, namespace, attempt, token)
            if result is _AttemptResult.loaded:
                _log.info("relayer SDK loaded and validated after %d attempt(s)", attempt.number)
                return LoaderOutcome(
                    status=OutcomeStatus.loaded,
                    attempts=attempt.number,
                    source=OutcomeSource.script,
                )
            if result is _AttemptResult.cancelled:
                return self._cancelled(attempt.number)
            if not attempt.has_next:
                return self._exhausted(namespace, attempt, result)
            emit_trace(
                self._trace,
                f"ResourceLoader: {result.value} on attempt {attempt.describe()}, "
                f"retrying in {self.options.retry_backoff_ms}ms",
            )
            if await self._sleep_or_cancel(self.options.retry_backoff, token):
                return self._cancelled(attempt.number)
            attempt = attempt.next()

    async def _attempt(
        self,
        page: PageContext,
        namespace: GlobalNamespace,
        attempt: LoadAttempt,
        token: CancelToken,
    ) -> _AttemptResult:
        document = page.document
        for stale in document.scripts(self.source_url):
            document.remove(stale)
            emit_trace(self._trace, "ResourceLoader: removed existing script")

        node = document.create_script(self.source_url)
        document.append(node)
        self.injections += 1

        settled, cancelled = await self._race(node, token)
        if cancelled:
            document.remove(node)
            return _AttemptResult.cancelled
        if not settled:
            _log.info("script loading timeout on attempt %s", attempt.describe())
            emit_trace(self._trace, "ResourceLoader: script loading timeout")
            document.remove(node)
            return _AttemptResult.timeout
        if node.error is not None:
            _log.info("script loading error on attempt %s: %s", attempt.describe(), node.error)
            emit_trace(self._trace, f"ResourceLoader: script loading error on attempt {attempt.describe()}")
            return _AttemptResult.error

        emit_trace(self._trace, "ResourceLoader: script loaded, waiting for SDK to settle")
        if await self._sleep_or_cancel(self.options.settle_delay, token):
            return _AttemptResult.cancelled
        if check_namespace(page.globals, namespace.key, self._trace, shape=self.shape):
            return _AttemptResult.loaded
        emit_trace(self._trace, f"ResourceLoader: {namespace.key} not available after script load")
        return _AttemptResult.shape_invalid

    async def _race(self, node: ScriptNode, token: CancelToken) -> tuple[bool, bool]:
        """Wait for the node to settle, the timeout, or cancellation.

        Returns ``(settled, cancelled)``.
        """
        waiter = asyncio.ensure_future(node.wait())
        canceller = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {waiter, canceller},
                timeout=self.options.timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for pending in (waiter, canceller):
                if not pending.done():
                    pending.cancel()
            await asyncio.gather(waiter, canceller, return_exceptions=True)
        if canceller in done or token.is_cancelled():
            return False, True
        return waiter in done, False

    @staticmethod
    async def _sleep_or_cancel(delay: float, token: CancelToken) -> bool:
        """Sleep for ``delay`` seconds; return True if cancellation was requested meanwhile."""
        if token.is_cancelled():
            return True
        if delay <= 0:
            await asyncio.sleep(0)
            return token.is_cancelled()
        try:
            await asyncio.wait_for(token.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    def _cancelled(self, attempts: int) -> LoaderOutcome:
        _log.info("load of %s cancelled after %d attempt(s)", self.source_url, attempts)
        emit_trace(self._trace, "ResourceLoader: load cancelled")
        return LoaderOutcome(status=OutcomeStatus.cancelled, attempts=attempts)

    def _exhausted(
        self,
        namespace: GlobalNamespace,
        attempt: LoadAttempt,
        result: _AttemptResult,
    ) -> LoaderOutcome:
        attempts = attempt.number
        if result is _AttemptResult.timeout:
            error: LoaderError = LoadTimeoutError(
                f"ResourceLoader: failed to load relayer SDK from {self.source_url} "
                f"after {attempts} attempts (timeout)",
                attempts=attempts,
            )
        elif result is _AttemptResult.error:
            error = LoadNetworkError(
                f"ResourceLoader: failed to load relayer SDK from {self.source_url} after {attempts} attempts",
                attempts=attempts,
            )
        else:
            error = ShapeInvalidError(
                f"ResourceLoader: relayer SDK script loaded from {self.source_url}, but "
                f"{namespace.key} is invalid after {attempts} attempts",
                attempts=attempts,
            )

        if self.fallback_module:
            try:
                install_fallback(namespace, self.fallback_module, shape=self.shape, trace=self._trace)
            except FallbackImportError as exc:
                _log.warning("fallback %s unavailable: %s", self.fallback_module, exc)
            else:
                return LoaderOutcome(
                    status=OutcomeStatus.loaded,
                    attempts=attempts,
                    source=OutcomeSource.fallback,
                )

        _log.warning("%s", error)
        raise error

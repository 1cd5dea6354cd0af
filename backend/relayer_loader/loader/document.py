from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping

import httpx

from relayer_loader.loader.errors import ScriptLoadError

_log = logging.getLogger(__name__)

_DEFAULT_HEADERS: Mapping[str, str] = {
    "User-Agent": "relayer-sdk-loader/1.0",
    "Accept": "application/javascript, text/javascript, */*",
}


class ScriptState(str, enum.Enum):
    created = 'created'
    pending = 'pending'
    loaded = 'loaded'
    failed = 'failed'
    removed = 'removed'


class ScriptNode:
    """A script element: created detached, settled once by load or error."""

    def __init__(self, src: str, *, type: str = 'text/javascript', async_: bool = True) -> None:
        self.src = src
        self.type = type
        self.async_ = async_
        self.state = ScriptState.created
        self.error: BaseException | None = None
        self._settled = asyncio.Event()

    @property
    def settled(self) -> bool:
        return self._settled.is_set()

    def mark_loaded(self) -> bool:
        if self._settled.is_set():
            return False
        self.state = ScriptState.loaded
        self._settled.set()
        return True

    def mark_failed(self, error: BaseException | None = None) -> bool:
        if self._settled.is_set():
            return False
        self.state = ScriptState.failed
        self.error = error or ScriptLoadError(f"failed to load script {self.src}")
        self._settled.set()
        return True

    async def wait(self) -> None:
        """Suspend until the node settles; raise ScriptLoadError if it failed."""
        await self._settled.wait()
        if self.state is ScriptState.failed:
            err = self.error
            if isinstance(err, ScriptLoadError):
                raise err
            raise ScriptLoadError(f"failed to load script {self.src}") from err

    def __repr__(self) -> str:
        return f"ScriptNode(src={self.src!r}, state={self.state.value})"


class Document:
    """In-memory document head holding script nodes.

    Appending a node only marks it pending; something outside the document
    (the embedding host, or a test) settles it. Subclasses override
    ``_start``/``_stop`` to actually fetch resources.
    """

    def __init__(self) -> None:
        self._nodes: List[ScriptNode] = []
        self._listeners: List[Callable[[str, ScriptNode], None]] = []

    def on_event(self, cb: Callable[[str, ScriptNode], None]) -> None:
        self._listeners.append(cb)

    def _emit(self, event: str, node: ScriptNode) -> None:
        for cb in list(self._listeners):
            try:
                cb(event, node)
            except Exception:
                _log.exception("document listener failed on %s for %s", event, node.src)

    def scripts(self, src: str | None = None) -> List[ScriptNode]:
        if src is None:
            return list(self._nodes)
        return [n for n in self._nodes if n.src == src]

    def create_script(self, src: str) -> ScriptNode:
        return ScriptNode(src)

    def append(self, node: ScriptNode) -> None:
        if node in self._nodes:
            return
        self._nodes.append(node)
        node.state = ScriptState.pending
        self._emit('appended', node)
        self._start(node)

    def remove(self, node: ScriptNode) -> bool:
        try:
            self._nodes.remove(node)
        except ValueError:
            return False
        if not node.settled:
            node.state = ScriptState.removed
        self._stop(node)
        self._emit('removed', node)
        return True

    def _start(self, node: ScriptNode) -> None:
        pass

    def _stop(self, node: ScriptNode) -> None:
        pass

    async def close(self) -> None:
        for node in list(self._nodes):
            self.remove(node)


RegisterHook = Callable[[httpx.Response, ScriptNode], Awaitable[None] | None]


class HttpDocument(Document):
    """Document that fetches appended scripts over HTTP.

    ``register`` plays the part of the fetched script executing: it receives
    the response and is expected to install the capability into the page
    namespace. As in a browser, a registration that raises still counts as a
    loaded script; the loader's shape check decides whether it worked.
    """

    def __init__(
        self,
        register: RegisterHook,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__()
        if not callable(register):
            raise TypeError("register hook must be callable")
        self._register = register
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout if timeout is not None else httpx.Timeout(30.0, connect=10.0)
        merged = dict(_DEFAULT_HEADERS)
        if headers:
            merged.update(headers)
        self._headers = merged
        self._client_lock = asyncio.Lock()
        self._fetches: Dict[ScriptNode, asyncio.Task[None]] = {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            async with self._client_lock:
                if self._client is None:
                    self._client = httpx.AsyncClient(
                        timeout=self._timeout,
                        headers=self._headers,
                        follow_redirects=True,
                    )
        return self._client

    def _start(self, node: ScriptNode) -> None:
        loop = asyncio.get_running_loop()
        self._fetches[node] = loop.create_task(self._fetch(node))

    def _stop(self, node: ScriptNode) -> None:
        task = self._fetches.pop(node, None)
        if task is not None and not task.done():
            task.cancel()

    async def _fetch(self, node: ScriptNode) -> None:
        try:
            client = await self._get_client()
            response = await client.get(node.src)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            _log.info("script %s returned status %s", node.src, exc.response.status_code)
            node.mark_failed(ScriptLoadError(f"{node.src} returned status {exc.response.status_code}"))
            return
        except httpx.HTTPError as exc:
            _log.info("script %s failed: %s", node.src, exc)
            node.mark_failed(ScriptLoadError(f"{node.src}: {exc.__class__.__name__}: {exc}"))
            return
        finally:
            if self._fetches.get(node) is asyncio.current_task():
                self._fetches.pop(node, None)

        try:
            result: Any = self._register(response, node)
            if inspect.isawaitable(result):
                await result
        except Exception:
            _log.exception("registration hook failed for %s", node.src)
        node.mark_loaded()

    async def close(self) -> None:
        await super().close()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

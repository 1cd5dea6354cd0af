from __future__ import annotations

import importlib
import logging
from typing import Any, Optional

from relayer_loader.loader.errors import FallbackImportError
from relayer_loader.loader.page import GlobalNamespace
from relayer_loader.loader.shape import DEFAULT_SHAPE, CapabilityShape, check_capability
from relayer_loader.loader.trace import TraceSink, emit_trace

_log = logging.getLogger(__name__)


def import_capability(
    target: str,
    *,
    shape: CapabilityShape = DEFAULT_SHAPE,
    trace: Optional[TraceSink] = None,
) -> Any:
    """Import ``module`` or ``module:attribute`` and validate it as a capability."""
    if not target:
        raise FallbackImportError("fallback target is empty")
    module_name, _, attr = target.partition(':')
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise FallbackImportError(f"cannot import fallback module {module_name!r}: {exc}") from exc
    if attr:
        for part in attr.split('.'):
            try:
                obj = getattr(obj, part)
            except AttributeError as exc:
                raise FallbackImportError(f"{target!r} has no attribute {part!r}") from exc
    if not check_capability(obj, trace, shape=shape):
        raise FallbackImportError(f"{target!r} does not provide a valid capability object")
    return obj


def install_fallback(
    namespace: GlobalNamespace,
    target: str,
    *,
    shape: CapabilityShape = DEFAULT_SHAPE,
    trace: Optional[TraceSink] = None,
) -> Any:
    """Ensure the namespace slot holds a valid capability, importing ``target`` if needed.

    A valid object already in the slot wins; a malformed one is replaced.
    """
    if namespace.present():
        existing = namespace.get()
        if check_capability(existing, trace, shape=shape):
            return existing
    emit_trace(trace, f"ResourceLoader: importing fallback {target}")
    obj = import_capability(target, shape=shape, trace=trace)
    namespace.set(obj)
    _log.info("installed capability %r from fallback %s", namespace.key, target)
    return obj

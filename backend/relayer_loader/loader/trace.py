from __future__ import annotations

import logging
from typing import Callable, Optional

_log = logging.getLogger(__name__)

TraceSink = Callable[[str], None]


def emit_trace(trace: Optional[TraceSink], message: str) -> None:
    """Forward a diagnostic line to the optional sink; sink failures are logged, never raised."""
    if trace is None:
        return
    try:
        trace(message)
    except Exception:
        _log.exception("trace sink raised while handling %r", message)

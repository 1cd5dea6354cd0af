import sys
import pathlib

import pytest

# Ensure backend root (containing the 'relayer_loader' package) is on sys.path
BACKEND_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from relayer_loader.loader.models import LoaderOptions
from relayer_loader.loader.resource_loader import ResourceLoader
from tests.page_utils import NAMESPACE_KEY, SDK_URL


# Millisecond knobs shrunk so retry paths finish quickly; ratios match the defaults.
FAST_OPTIONS = dict(max_attempts=3, timeout_ms=100, retry_backoff_ms=20, settle_delay_ms=5)


@pytest.fixture
def fast_options() -> LoaderOptions:
    return LoaderOptions(**FAST_OPTIONS)


@pytest.fixture
def trace_log():
    lines: list[str] = []
    return lines


@pytest.fixture
def make_loader(fast_options, trace_log):
    def _build(page, **kwargs) -> ResourceLoader:
        kwargs.setdefault("source_url", SDK_URL)
        kwargs.setdefault("namespace_key", NAMESPACE_KEY)
        kwargs.setdefault("options", fast_options)
        kwargs.setdefault("trace", trace_log.append)
        return ResourceLoader(page, **kwargs)
    return _build

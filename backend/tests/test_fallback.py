import pytest

from relayer_loader.loader.errors import FallbackImportError, LoadTimeoutError
from relayer_loader.loader.fallback import import_capability, install_fallback
from relayer_loader.loader.models import LoaderOptions, OutcomeSource, OutcomeStatus
from relayer_loader.loader.page import GlobalNamespace
from tests import fake_relayer_sdk
from tests.page_utils import NAMESPACE_KEY, TIMEOUT, make_capability, make_page

FAKE_MODULE = "tests.fake_relayer_sdk"


def test_import_capability_from_module():
    assert import_capability(FAKE_MODULE) is fake_relayer_sdk


def test_import_capability_missing_module():
    with pytest.raises(FallbackImportError):
        import_capability("tests.no_such_relayer_module")


def test_import_capability_missing_attribute():
    with pytest.raises(FallbackImportError):
        import_capability(f"{FAKE_MODULE}:Nope")


def test_import_capability_rejects_invalid_object(trace_log):
    with pytest.raises(FallbackImportError):
        import_capability(f"{FAKE_MODULE}:Broken", trace=trace_log.append)
    assert trace_log == ["relayerSDK.createInstance has the wrong type (expected function)"]


def test_install_fallback_keeps_valid_existing():
    existing = make_capability()
    namespace = GlobalNamespace({NAMESPACE_KEY: existing}, NAMESPACE_KEY)
    assert install_fallback(namespace, FAKE_MODULE) is existing


def test_install_fallback_replaces_corrupt_value():
    page_globals = {NAMESPACE_KEY: {"initSDK": None}}
    namespace = GlobalNamespace(page_globals, NAMESPACE_KEY)
    assert install_fallback(namespace, FAKE_MODULE) is fake_relayer_sdk
    assert page_globals[NAMESPACE_KEY] is fake_relayer_sdk


@pytest.mark.asyncio
async def test_loader_uses_fallback_after_exhaustion(make_loader):
    page = make_page([TIMEOUT])
    options = LoaderOptions(max_attempts=2, timeout_ms=20, retry_backoff_ms=5, settle_delay_ms=0)
    loader = make_loader(page, options=options, fallback_module=FAKE_MODULE)

    outcome = await loader.load()

    assert outcome.status is OutcomeStatus.loaded
    assert outcome.source is OutcomeSource.fallback
    assert outcome.attempts == 2
    assert page.globals[NAMESPACE_KEY] is fake_relayer_sdk
    assert loader.is_loaded() is True


@pytest.mark.asyncio
async def test_broken_fallback_surfaces_original_error(make_loader):
    page = make_page([TIMEOUT])
    options = LoaderOptions(max_attempts=1, timeout_ms=20, retry_backoff_ms=5, settle_delay_ms=0)
    loader = make_loader(page, options=options, fallback_module=f"{FAKE_MODULE}:Broken")

    with pytest.raises(LoadTimeoutError) as excinfo:
        await loader.load()

    assert excinfo.value.attempts == 1
    assert NAMESPACE_KEY not in page.globals

from pathlib import Path
from pydantic import BaseModel
import os
from relayer_loader import __version__
# Optionally load a config.env file so local setups can pin the SDK source
# without exporting variables in every shell.
try:
    from dotenv import load_dotenv
    # Allow explicit override of config file path
    cfg_override = os.getenv('RELAYER_LOADER_CONFIG_FILE')
    candidates = []
    if cfg_override:
        candidates.append(Path(cfg_override))

    candidates.append(Path.cwd() / 'config.env')
    candidates.append(Path.cwd() / 'backend' / 'config.env')

    for p in candidates:
        try:
            if p and p.exists():
                load_dotenv(str(p))
                break
        except OSError:
            continue
except ImportError:
    # python-dotenv is optional at runtime; plain env vars still work
    pass

"""Central configuration.

Env vars:
  RELAYER_SDK_URL                  - script bundle injected into the page
  RELAYER_SDK_NAMESPACE_KEY        - global name the bundle registers under
  RELAYER_LOADER_MAX_ATTEMPTS      - attempt budget per load() call
  RELAYER_LOADER_TIMEOUT_MS        - per-attempt script timeout
  RELAYER_LOADER_RETRY_BACKOFF_MS  - delay between attempts
  RELAYER_LOADER_SETTLE_DELAY_MS   - grace period after the script reports load
  RELAYER_LOADER_FALLBACK_MODULE   - importable module used once attempts run out
  RELAYER_LOADER_LOG_LEVEL         - logging level (DEBUG, INFO, ...)
"""

DEFAULT_SDK_URL = 'https://cdn.zama.ai/relayer-sdk-js/0.2.0/relayer-sdk-js.umd.cjs'
DEFAULT_NAMESPACE_KEY = 'relayerSDK'

_diagnostics: list[str] = []


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        _diagnostics.append(f"invalid_int name={name} value={value!r} using={default}")
        return default


def _env_str(name: str, default: str | None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


class Settings(BaseModel):
    app_name: str = 'Relayer SDK Loader'
    api_v1_prefix: str = '/api/v1'
    version: str = os.getenv('RELAYER_LOADER_VERSION', __version__)
    sdk_url: str = _env_str('RELAYER_SDK_URL', DEFAULT_SDK_URL)
    namespace_key: str = _env_str('RELAYER_SDK_NAMESPACE_KEY', DEFAULT_NAMESPACE_KEY)
    max_attempts: int = _env_int('RELAYER_LOADER_MAX_ATTEMPTS', 3)
    timeout_ms: int = _env_int('RELAYER_LOADER_TIMEOUT_MS', 10000)
    retry_backoff_ms: int = _env_int('RELAYER_LOADER_RETRY_BACKOFF_MS', 1000)
    settle_delay_ms: int = _env_int('RELAYER_LOADER_SETTLE_DELAY_MS', 500)
    fallback_module: str | None = _env_str('RELAYER_LOADER_FALLBACK_MODULE', None)
    # Logging level for the loader (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = os.getenv('RELAYER_LOADER_LOG_LEVEL', 'INFO')
    diagnostics: list[str] | None = _diagnostics

settings = Settings()

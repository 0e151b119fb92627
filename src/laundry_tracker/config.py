import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import dotenv_values

from .domain.pricing import DEFAULT_SCHEDULE, PriceSchedule
from .logging import get_logger

log = get_logger("config")

BACKEND_OPENAI = "openai"
BACKEND_OPENROUTER = "openrouter"
DEFAULT_MODELS = {
    BACKEND_OPENAI: "gpt-4o-mini",
    BACKEND_OPENROUTER: "google/gemini-2.5-flash",
}


@dataclass(frozen=True)
class ExtractionConfig:
    backend: str
    model_name: str
    api_key: Optional[str]
    base_url: Optional[str] = None
    timeout_seconds: float = 120.0


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    Lets the CLI run from a subdirectory and still pick up the repo-level .env.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Values of the nearest .env; the process environment is left untouched."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    try:
        values = {k: v for k, v in dotenv_values(path).items() if v is not None}
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Failed reading .env: {e}")
        return {}
    log.debug(f"Loaded {len(values)} key(s) from .env at {path}")
    return values


def _lookup(env: Dict[str, str], *names: str) -> Optional[str]:
    """First non-empty value: process environment wins over .env."""
    for name in names:
        v = os.environ.get(name)
        if v and v.strip():
            return v.strip()
    for name in names:
        v = env.get(name)
        if v and v.strip():
            return v.strip()
    return None


def _float_setting(env: Dict[str, str], name: str, default: float) -> float:
    raw = _lookup(env, name)
    if raw is None:
        return default
    try:
        value = float(raw.replace(",", "."))
    except ValueError:
        log.warning(f"{name}={raw!r} is not a number; using {default}")
        return default
    if value < 0:
        log.warning(f"{name}={raw!r} is negative; using {default}")
        return default
    return value


def load_price_schedule(dotenv_dir: str) -> PriceSchedule:
    env = _read_dotenv(dotenv_dir)
    schedule = PriceSchedule(
        rate_per_kg=_float_setting(env, "LAUNDRY_PRICE_PER_KG", DEFAULT_SCHEDULE.rate_per_kg),
        minimum_charge=_float_setting(env, "LAUNDRY_MINIMUM_CHARGE", DEFAULT_SCHEDULE.minimum_charge),
    )
    log.debug(f"Price schedule: {schedule}")
    return schedule


def load_extraction_config(dotenv_dir: str) -> ExtractionConfig:
    """Backend, model and credentials for the photo extractor.

    LAUNDRY_BACKEND selects "openai" (default) or "openrouter". The API key is
    read from OPENAI_API_KEY or OPEN_ROUTER_API_KEY (lowercase variants too).
    """
    env = _read_dotenv(dotenv_dir)
    backend = (_lookup(env, "LAUNDRY_BACKEND") or BACKEND_OPENAI).lower()
    if backend not in DEFAULT_MODELS:
        log.warning(f"Unknown LAUNDRY_BACKEND={backend!r}; defaulting to '{BACKEND_OPENAI}'")
        backend = BACKEND_OPENAI
    if backend == BACKEND_OPENROUTER:
        api_key = _lookup(env, "OPEN_ROUTER_API_KEY", "open_router_api_key")
        base_url = None
    else:
        api_key = _lookup(env, "OPENAI_API_KEY", "openai_api_key")
        base_url = _lookup(env, "OPENAI_BASE_URL")
    model = _lookup(env, "LAUNDRY_MODEL") or DEFAULT_MODELS[backend]
    timeout = _float_setting(env, "LAUNDRY_EXTRACTION_TIMEOUT", 120.0)
    if not api_key:
        log.warning(f"No API key configured for backend '{backend}'; extraction will fail")
    return ExtractionConfig(
        backend=backend,
        model_name=model,
        api_key=api_key,
        base_url=base_url,
        timeout_seconds=timeout,
    )

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from laundry_tracker.config import (  # noqa: E402
    BACKEND_OPENAI,
    BACKEND_OPENROUTER,
    DEFAULT_MODELS,
    load_extraction_config,
    load_price_schedule,
)
from laundry_tracker.domain.pricing import DEFAULT_SCHEDULE  # noqa: E402

_VARS = (
    "LAUNDRY_BACKEND",
    "LAUNDRY_MODEL",
    "LAUNDRY_PRICE_PER_KG",
    "LAUNDRY_MINIMUM_CHARGE",
    "LAUNDRY_EXTRACTION_TIMEOUT",
    "OPENAI_API_KEY",
    "openai_api_key",
    "OPENAI_BASE_URL",
    "OPEN_ROUTER_API_KEY",
    "open_router_api_key",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_env(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("", encoding="utf-8")
    assert load_price_schedule(str(tmp_path)) == DEFAULT_SCHEDULE
    cfg = load_extraction_config(str(tmp_path))
    assert cfg.backend == BACKEND_OPENAI
    assert cfg.model_name == DEFAULT_MODELS[BACKEND_OPENAI]
    assert cfg.api_key is None
    assert cfg.timeout_seconds == 120.0


def test_dotenv_found_from_subdirectory(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text(
        "LAUNDRY_BACKEND=openrouter\nOPEN_ROUTER_API_KEY=or-123\nLAUNDRY_PRICE_PER_KG=3,00\nLAUNDRY_MINIMUM_CHARGE=4\n",
        encoding="utf-8",
    )
    sub = tmp_path / "a" / "b"
    sub.mkdir(parents=True)
    cfg = load_extraction_config(str(sub))
    assert cfg.backend == BACKEND_OPENROUTER
    assert cfg.api_key == "or-123"
    assert cfg.model_name == DEFAULT_MODELS[BACKEND_OPENROUTER]
    schedule = load_price_schedule(str(sub))
    assert schedule.rate_per_kg == 3.0
    assert schedule.minimum_charge == 4.0


def test_environment_wins_over_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("OPENAI_API_KEY=from-file\nLAUNDRY_MODEL=file-model\n", encoding="utf-8")
    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:8080/v1")
    cfg = load_extraction_config(str(tmp_path))
    assert cfg.api_key == "from-env"
    assert cfg.model_name == "file-model"
    assert cfg.base_url == "http://localhost:8080/v1"


def test_invalid_values_fall_back(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("", encoding="utf-8")
    monkeypatch.setenv("LAUNDRY_PRICE_PER_KG", "cheap")
    monkeypatch.setenv("LAUNDRY_MINIMUM_CHARGE", "-1")
    monkeypatch.setenv("LAUNDRY_BACKEND", "carrier-pigeon")
    assert load_price_schedule(str(tmp_path)) == DEFAULT_SCHEDULE
    assert load_extraction_config(str(tmp_path)).backend == BACKEND_OPENAI

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture()
def db_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Settings pointing at a fresh SQLite file with the schema created."""
    from ingestion.db.session import ensure_schema
    from ingestion.settings import get_settings, reset_settings_cache

    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'app.db'}")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("SERPAPI_KEY", "serp-test-key")
    monkeypatch.setenv("SOURCE_BLOG_URL", "https://beyondchats.com/blogs")
    reset_settings_cache()
    settings = get_settings()
    ensure_schema(settings)
    yield settings
    reset_settings_cache()

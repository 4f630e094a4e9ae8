import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so `import src` works when tests run from any CWD/import mode.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
PROJECT_ROOT_STR = str(PROJECT_ROOT)
if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)


@pytest.fixture(autouse=True)
def fresh_engine_config(monkeypatch):
    """Load the repository config for each test, never a leftover override."""
    from src.analytics.config import clear_config_cache

    monkeypatch.delenv("ANALYTICS_CONFIG_PATH", raising=False)
    clear_config_cache()

    yield

    clear_config_cache()

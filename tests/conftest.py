import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def disable_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("time.sleep", lambda *_args, **_kwargs: None)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("LOREQUEST_DATABASE_URL", "LOREQUEST_COMBAT_SEED", "LOREQUEST_NOTIFIER", "LOREQUEST_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)

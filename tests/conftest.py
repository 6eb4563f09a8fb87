from __future__ import annotations

import pytest

ENV_VARS = ("WOL_BROADCAST_IP", "WOL_PORTS", "WOL_TIMEOUT", "WOL_STRICT", "LOG_FILE", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch):
    # load_dotenv writes straight into os.environ; setenv first so undo removes it
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)

from __future__ import annotations

import pytest

from scripts.demo_login_flow import main


def test_demo_walkthrough_runs_every_step(capsys: pytest.CaptureFixture[str]) -> None:
    main()
    out = capsys.readouterr().out
    assert "4. POST /oauth/token          → 200" in out
    assert "8. POST /oauth/revoke         → 200  active=False" in out
    assert "Invalid authorization code" in out
    assert "All steps completed." in out

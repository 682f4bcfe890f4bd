"""Shared fixtures for ediff tests."""

import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's EDIFF_* settings and SHELL out of the tests."""
    for name in (
        "EDIFF_DIFF",
        "EDIFF_FD_DIR",
        "EDIFF_FD_DEBUG",
        "EDIFF_ALWAYS_SUCCEED",
        "EDIFF_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SHELL", "/bin/sh")

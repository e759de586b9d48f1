"""Shared pytest fixtures and test helpers for dismwrap tests."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner
from hypothesis import HealthCheck, settings

from dismwrap.config.models import RewriteConfig
from dismwrap.config.settings import WrapperSettings

# Property tests spawn nothing, but CI machines vary in speed.
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
    print_blob=True,
)
settings.register_profile("dev", max_examples=50, deadline=None)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Strip ``DISMWRAP_*`` env vars and point config discovery at nothing."""
    for key in list(os.environ):
        if key.startswith("DISMWRAP_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("DISMWRAP_CONFIG", str(tmp_path / "no-such-dismwrap.toml"))


@pytest.fixture
def _restore_logging() -> Generator[None]:
    """Restore root logger state after tests that configure logging."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    wrapper = logging.getLogger("dismwrap")
    wrapper_level = wrapper.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    wrapper.setLevel(wrapper_level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def rewrite_config() -> RewriteConfig:
    """Default rewrite tables as a fresh instance."""
    return RewriteConfig()


@pytest.fixture
def python_settings() -> WrapperSettings:
    """Settings that target the running interpreter instead of DISM."""
    return WrapperSettings.load(target_executable=sys.executable, poll_interval=0.01)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def child_script(*statements: str) -> list[str]:
    """Arguments that make a Python target run *statements* via ``-c``."""
    return ["-c", "; ".join(["import sys", *statements])]

"""Runtime settings: env vars and TOML config in one frozen object.

Priority chain (highest to lowest):
  1. Init kwargs: explicit overrides (tests, embedding callers)
  2. Env vars: ``DISMWRAP_*`` prefix
  3. TOML file: ``dismwrap.toml`` found by :func:`find_config`
  4. Code defaults

The wrapper forwards its whole argv to DISM, so unlike most CLIs there
are no command-line flags in this chain.  Only ambient knobs live here;
the rewrite tables stay in :mod:`dismwrap.config.models`.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from dismwrap.config.discovery import find_config


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``dismwrap.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the TOML keys that name settings fields."""
        return {k: v for k, v in self._data.items() if k in self.settings_cls.model_fields}


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class WrapperSettings(BaseSettings):
    """Ambient settings for a wrapper invocation.

    Attributes:
        target_executable: Real DISM binary, resolved by the OS search path.
        verbose: DEBUG logging for the ``dismwrap`` logger.
        log_json: JSON log lines instead of console rendering.
        banner: Print the diagnostic banner to stderr.
        poll_interval: Seconds per bounded wait while draining output.
        fallback_exit_code: Status used when the wrapper itself fails.
        config_path: The TOML file that was loaded, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "DISMWRAP_",
    }

    target_executable: str = "dism-origin.exe"
    verbose: bool = False
    log_json: bool = False
    banner: bool = False
    poll_interval: float = Field(default=0.1, gt=0)
    fallback_exit_code: int = 1
    config_path: Path | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def load(
        cls,
        *,
        config_path: str | Path | None = None,
        search_dir: Path | None = None,
        **overrides: Any,
    ) -> WrapperSettings:
        """Construct settings for one invocation.

        Uses *config_path* when it names a file, otherwise discovers
        ``dismwrap.toml`` via :func:`find_config`.  *overrides* win over
        every other source.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(search_dir)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None

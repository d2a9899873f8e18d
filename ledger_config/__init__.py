"""
ledger_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.  Returns a frozen ``LedgerSettings``.

Architecture position:
    Configuration -- sits above ``ledger_kernel``.  Only the composition
    root (``ledger_kernel.kernel.LedgerKernel.from_settings``) consumes
    settings; services receive a ``LedgerPolicy`` built from them.

Invariants enforced:
    - Precedence: explicit overrides > environment > YAML file > packaged
      defaults.
    - Unknown keys and invalid values are rejected with ``ConfigError``.

Failure modes:
    - ``FileNotFoundError`` -- an explicit or LEDGER_CONFIG_FILE path does
      not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ConfigError`` -- schema or value validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``config_loaded`` log record naming the sources that were merged.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ledger_config.loader import (
    DEFAULTS_PATH,
    ENV_CONFIG_FILE,
    ConfigError,
    env_overrides,
    load_yaml_file,
    merge,
    parse_settings,
)
from ledger_config.schema import (
    LedgerSettings,
    LoggingSettings,
    MoneySettings,
    NumberingSettings,
    PaginationSettings,
)

_logger = logging.getLogger("ledger_kernel.config")


def get_active_config(
    path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to layer over the packaged defaults.  Defaults to
            the LEDGER_CONFIG_FILE environment variable, if set.
        overrides: Nested mapping applied last, e.g.
            ``{"numbering": {"padding": 4}}``.
        environ: Environment to read instead of ``os.environ``.

    Raises:
        FileNotFoundError, yaml.YAMLError, ConfigError.
    """
    environ = os.environ if environ is None else environ
    data = load_yaml_file(DEFAULTS_PATH)
    sources = ["defaults"]

    config_file = path or environ.get(ENV_CONFIG_FILE)
    if config_file:
        data = merge(data, load_yaml_file(Path(config_file)))
        sources.append(str(config_file))

    env_data = env_overrides(environ)
    if env_data:
        data = merge(data, env_data)
        sources.append("environment")

    if overrides:
        data = merge(data, overrides)
        sources.append("overrides")

    settings = parse_settings(data, tuple(sources))

    _logger.info(
        "config_loaded",
        extra={
            "config_sources": list(settings.sources),
            "database_backend": settings.database_url.split(":", 1)[0],
            "number_padding": settings.numbering.padding,
            "decimal_places": settings.money.decimal_places,
        },
    )
    return settings


__all__ = [
    "ConfigError",
    "LedgerSettings",
    "LoggingSettings",
    "MoneySettings",
    "NumberingSettings",
    "PaginationSettings",
    "get_active_config",
]

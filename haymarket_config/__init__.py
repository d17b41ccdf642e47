"""
haymarket_config -- single public entrypoint for runtime configuration.

``get_active_config()`` is the only way services obtain configuration.  It
reads the packaged ``defaults.yaml``, merges the file named by
``HAYMARKET_CONFIG_FILE`` on top when set, then applies
``HAYMARKET_DATABASE_URL`` and ``HAYMARKET_LOG_LEVEL``.

Failure modes:
    - ``FileNotFoundError`` if ``HAYMARKET_CONFIG_FILE`` names a missing file.
    - ``KeyError`` / ``ValueError`` for structurally invalid configuration.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from haymarket_config.loader import apply_env_overrides, load_yaml_file, merge, parse_config
from haymarket_config.schema import MarketplaceConfig

_logger = logging.getLogger("haymarket.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    config_file: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> MarketplaceConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_file: Override file merged over the defaults.  Defaults to
            ``$HAYMARKET_CONFIG_FILE`` when set.
        env: Environment mapping; ``os.environ`` when omitted.
    """
    env = os.environ if env is None else env

    data = load_yaml_file(DEFAULTS_PATH)
    override_path = config_file or (
        Path(env["HAYMARKET_CONFIG_FILE"]) if env.get("HAYMARKET_CONFIG_FILE") else None
    )
    if override_path is not None:
        data = merge(data, load_yaml_file(override_path))
    data = apply_env_overrides(data, env)

    config = parse_config(data)
    _logger.info(
        "HAYMARKET_CONFIG_TRACE",
        extra={
            "checksum": config.checksum,
            "override_file": str(override_path) if override_path else None,
            "role_policies": len(config.roles),
        },
    )
    return config


__all__ = ["MarketplaceConfig", "get_active_config"]

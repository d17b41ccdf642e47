"""
Configuration Loader (``haymarket_config.loader``).

Loads YAML files and parses them into ``haymarket_config.schema``
dataclasses.  Callers use ``haymarket_config.get_active_config()``; this
module is its internal tooling.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown role names or non-positive limits  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from haymarket_config.schema import (
    DeliveryDef,
    MarketplaceConfig,
    NumberingDef,
    PaginationDef,
)

KNOWN_ROLES = frozenset({"ADMIN", "MANAGER", "VIEWER"})

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "HAYMARKET_DATABASE_URL": ("database", "url"),
    "HAYMARKET_LOG_LEVEL": ("logging", "level"),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursive dict merge; values in ``override`` win."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    for var, (section, key) in ENV_OVERRIDES.items():
        if env.get(var):
            data = merge(data, {section: {key: env[var]}})
    return data


def parse_numbering(data: dict[str, Any]) -> NumberingDef:
    first_value = int(data["first_value"])
    if first_value < 1:
        raise ValueError(f"first_value must be positive, got {first_value}")
    return NumberingDef(prefix=str(data.get("prefix") or ""), first_value=first_value)


def parse_delivery(data: dict[str, Any]) -> DeliveryDef:
    pounds_per_ton = Decimal(str(data["pounds_per_ton"]))
    if pounds_per_ton <= 0:
        raise ValueError(f"pounds_per_ton must be positive, got {pounds_per_ton}")
    return DeliveryDef(
        pounds_per_ton=pounds_per_ton,
        display_places=int(data.get("display_places", 2)),
    )


def parse_pagination(data: dict[str, Any]) -> PaginationDef:
    pagination = PaginationDef(
        default_limit=int(data["default_limit"]),
        max_limit=int(data["max_limit"]),
    )
    if not 1 <= pagination.default_limit <= pagination.max_limit:
        raise ValueError(
            f"default_limit must be within 1..{pagination.max_limit}, "
            f"got {pagination.default_limit}"
        )
    return pagination


def parse_roles(data: dict[str, Any]) -> dict[str, tuple[str, ...]]:
    roles: dict[str, tuple[str, ...]] = {}
    for operation, allowed in data.items():
        names = tuple(str(r).upper() for r in allowed)
        unknown = set(names) - KNOWN_ROLES
        if unknown:
            raise ValueError(
                f"Unknown roles for {operation}: {', '.join(sorted(unknown))}"
            )
        roles[operation] = names
    return roles


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any]) -> MarketplaceConfig:
    """Parse a fully merged configuration dict."""
    numbering = data["numbering"]
    return MarketplaceConfig(
        database_url=data["database"]["url"],
        database_echo=bool(data["database"].get("echo", False)),
        log_level=str(data["logging"]["level"]).upper(),
        stack_id=parse_numbering(numbering["stack_id"]),
        po_number=parse_numbering(numbering["po_number"]),
        load_number=parse_numbering(numbering["load_number"]),
        delivery=parse_delivery(data["delivery"]),
        pagination=parse_pagination(data["pagination"]),
        roles=parse_roles(data["roles"]),
        checksum=compute_checksum(data),
    )

"""Network configuration loader."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from solana_incubator.core.models import IncubatorSettings
from solana_incubator.rpc.exceptions import ConfigurationError

ENV_PREFIX = "SOLANA_INCUBATOR_"

DEFAULT_CONFIG_PATH = Path(__file__).parent / "network.yaml"


def load_network_config(path: str | Path | None = None) -> dict[str, Any]:
    """
    Load raw network configuration from a YAML file.

    Parameters
    ----------
    path : str | Path | None
        Config file. Uses the bundled network.yaml if None.

    Returns
    -------
    dict[str, Any]
        Parsed configuration mapping

    Raises
    ------
    ConfigurationError
        If the file is missing, unreadable or not a mapping

    """
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        msg = f"Cannot read network config {path}: {e}"
        raise ConfigurationError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in {path}: {e}"
        raise ConfigurationError(msg) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Network config {path} must be a mapping"
        raise ConfigurationError(msg)
    return data


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect SOLANA_INCUBATOR_* overrides for known settings fields."""
    overrides: dict[str, Any] = {}
    for field in IncubatorSettings.model_fields:
        value = env.get(f"{ENV_PREFIX}{field.upper()}")
        if value is None:
            continue
        if field == "rpc_endpoints":
            overrides[field] = [url.strip() for url in value.split(",") if url.strip()]
        else:
            overrides[field] = value
    return overrides


def load_settings(path: str | Path | None = None, env: Mapping[str, str] | None = None) -> IncubatorSettings:
    """
    Load and validate network settings.

    Environment variables named ``SOLANA_INCUBATOR_<FIELD>`` take precedence
    over the file. ``SOLANA_INCUBATOR_RPC_ENDPOINTS`` is comma separated.

    Parameters
    ----------
    path : str | Path | None
        Config file. Uses the bundled network.yaml if None.
    env : Mapping[str, str] | None
        Environment to read overrides from. Uses ``os.environ`` if None.

    Returns
    -------
    IncubatorSettings
        Validated settings

    Raises
    ------
    ConfigurationError
        If the configuration cannot be loaded or fails validation

    """
    data = load_network_config(path)
    data.update(_env_overrides(os.environ if env is None else env))

    try:
        return IncubatorSettings.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid network configuration: {e}"
        raise ConfigurationError(msg) from e


def get_rpc_endpoints(path: str | Path | None = None) -> list[str]:
    """
    Get the ordered list of RPC endpoints.

    Parameters
    ----------
    path : str | Path | None
        Config file. Uses the bundled network.yaml if None.

    Returns
    -------
    list[str]
        Endpoint URLs in failover order

    """
    return load_settings(path).rpc_endpoints


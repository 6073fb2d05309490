"""Network configuration loading."""

from solana_incubator.data.loader import (
    DEFAULT_CONFIG_PATH,
    get_rpc_endpoints,
    load_network_config,
    load_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "get_rpc_endpoints",
    "load_network_config",
    "load_settings",
]

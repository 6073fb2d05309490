"""RPC layer with endpoint failover, retry logic and the JSON-RPC client."""

from solana_incubator.rpc.client import SolanaRPCClient
from solana_incubator.rpc.exceptions import (
    ConfigurationError,
    NoHealthyEndpointError,
    OperationFailedError,
    ProbeFailure,
    RPCError,
    SolanaIncubatorError,
)
from solana_incubator.rpc.pool import Endpoint, EndpointPool
from solana_incubator.rpc.retry import RetryConfig

__all__ = [
    "ConfigurationError",
    "Endpoint",
    "EndpointPool",
    "NoHealthyEndpointError",
    "OperationFailedError",
    "ProbeFailure",
    "RPCError",
    "RetryConfig",
    "SolanaIncubatorError",
    "SolanaRPCClient",
]

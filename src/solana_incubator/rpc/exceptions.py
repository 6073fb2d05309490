"""Exception hierarchy for RPC access and endpoint failover."""


class SolanaIncubatorError(Exception):
    """Base class for all errors raised by solana_incubator."""


class ConfigurationError(SolanaIncubatorError):
    """Raised when network configuration is missing or invalid."""


class RPCError(SolanaIncubatorError):
    """
    A single JSON-RPC call failed.

    Parameters
    ----------
    message : str
        Human readable description
    endpoint : str | None
        URL of the endpoint that produced the error
    code : int | None
        JSON-RPC error code or HTTP status, when known

    """

    def __init__(self, message: str, endpoint: str | None = None, code: int | None = None) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.code = code


class ProbeFailure(RPCError):
    """A health probe failed. Recovered inside the pool, never surfaced."""


class NoHealthyEndpointError(SolanaIncubatorError):
    """Every endpoint in the pool failed its probe during one scan."""


class OperationFailedError(SolanaIncubatorError):
    """
    A remote operation failed on every allowed attempt.

    Parameters
    ----------
    attempts : int
        Number of attempts made
    last_error : BaseException
        Error raised by the final attempt

    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"Operation failed after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error

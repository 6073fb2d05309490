"""Resilient Solana RPC access and deposit balance polling for the Incubator."""

__version__ = "0.1.0"

"""Balance polling and deposit operations."""

from solana_incubator.balance.poller import FETCH_ERROR_MESSAGE, BalancePoller, PollHandle
from solana_incubator.balance.query import balance_query, fetch_balance, submit_deposit

__all__ = [
    "FETCH_ERROR_MESSAGE",
    "BalancePoller",
    "PollHandle",
    "balance_query",
    "fetch_balance",
    "submit_deposit",
]

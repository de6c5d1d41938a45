"""Typed outcomes of the completion and claim flows.

Every expected, user-facing failure is a ``RewardError`` subclass carrying a
stable ``code`` and the HTTP status the API layer renders it with. None of
them indicate a system fault and none are retried automatically.
"""

from __future__ import annotations


class RewardError(Exception):
    """Base class for expected completion/claim failures."""

    code = "reward_error"
    status_code = 400
    default_message = "Reward request rejected"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# --- input validation ---


class InvalidWalletAddress(RewardError):
    code = "invalid_wallet_address"
    status_code = 422
    default_message = "Wallet address is not a valid account address"


# --- not found ---


class QuestNotFound(RewardError):
    code = "quest_not_found"
    status_code = 404
    default_message = "Quest not found"


class NotCompleted(RewardError):
    code = "not_completed"
    status_code = 404
    default_message = "Quest not completed yet"


# --- state conflicts ---


class AlreadyCompleted(RewardError):
    code = "already_completed"
    status_code = 409
    default_message = "Quest already completed"


class AlreadyClaimed(RewardError):
    code = "already_claimed"
    status_code = 409
    default_message = "Reward already claimed"


class PoolFull(RewardError):
    code = "pool_full"
    status_code = 409
    default_message = "This quest has reached maximum participants. Pool is full."


class PoolInsufficientFunds(RewardError):
    code = "pool_insufficient_funds"
    status_code = 409
    default_message = "Pool has insufficient funds. Please contact the company."


class InsufficientBalance(RewardError):
    """Raised by the pool accountant when a conditional decrement matches no row."""

    code = "insufficient_balance"
    status_code = 409
    default_message = "Pool balance cannot cover this claim"


# --- signing ---


class SigningUnavailable(RewardError):
    code = "signing_unavailable"
    status_code = 503
    default_message = "Claim signing is currently unavailable"

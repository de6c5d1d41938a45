"""Authorizer signing key.

The key belongs to the ledger account the reward contracts trust as signer.
It is held by a ``SigningKey`` capability object that is either *present*
(can sign) or *absent* (every signing attempt raises ``SigningUnavailable``).
A malformed configured key yields the absent state rather than a startup crash.
"""

from __future__ import annotations

import logging

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from edufund.config import Settings
from edufund.rewards.exceptions import SigningUnavailable

logger = logging.getLogger(__name__)


class SigningKey:
    """Holds (or explicitly lacks) the authorizer's private key."""

    def __init__(self, private_key: str | None = None) -> None:
        self._account = None
        if private_key:
            key = private_key.strip()
            if not key.startswith("0x"):
                key = "0x" + key
            try:
                self._account = Account.from_key(key)
            except Exception as exc:
                # Never log the exception text: it can echo the key material
                logger.warning("Configured signer key is malformed (%s); claim signing disabled", type(exc).__name__)
            else:
                logger.info("Signer key loaded for %s", self._account.address)
        else:
            logger.warning("No signer key configured; claim tickets will be unsigned")

    @classmethod
    def absent(cls) -> SigningKey:
        return cls(None)

    @classmethod
    def from_settings(cls, settings: Settings) -> SigningKey:
        return cls(settings.signer_private_key)

    @property
    def is_present(self) -> bool:
        return self._account is not None

    @property
    def address(self) -> str | None:
        """Checksummed ledger address of the authorizer, or None when absent."""
        return self._account.address if self._account is not None else None

    def sign_digest(self, digest: bytes) -> str:
        """Sign a 32-byte digest with the personal-message convention.

        The signed payload is ``keccak256("\\x19Ethereum Signed Message:\\n32" || digest)``,
        which is what ``ecrecover`` after ``toEthSignedMessageHash`` expects on-chain.
        Returns the 65-byte ``r || s || v`` signature as 0x-prefixed hex.
        """
        if self._account is None:
            raise SigningUnavailable("No signer key configured")
        if len(digest) != 32:
            msg = f"digest must be 32 bytes, got {len(digest)}"
            raise ValueError(msg)
        signed = self._account.sign_message(encode_defunct(primitive=digest))
        return Web3.to_hex(signed.signature)


def recover_signer(digest: bytes, signature: str) -> str:
    """Recover the checksummed address that produced `signature` over `digest`."""
    return Account.recover_message(encode_defunct(primitive=digest), signature=signature)

"""Claim ticket construction and signing.

Two message shapes, matching the verifying contracts bit for bit:

* treasury path: ``keccak256(abi.encodePacked(bytes32 questHash, address learner, uint256 amountWei))``
* pool path:     ``keccak256(abi.encodePacked(bytes32 poolHash, address learner, bytes32 questHash))``

where ``questHash = keccak256(utf8(questId))`` and ``poolHash = keccak256(utf8(poolId))``.
The resulting digest is signed as a personal message (see ``SigningKey.sign_digest``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal

import structlog
from web3 import Web3

from edufund.rewards.exceptions import InvalidWalletAddress
from edufund.rewards.signer import SigningKey, recover_signer

logger = structlog.get_logger()

TOKEN_DECIMALS = 18


def normalize_address(address: str) -> str:
    """Return the checksummed form of an account address, or raise InvalidWalletAddress."""
    if not isinstance(address, str) or not Web3.is_address(address.strip()):
        raise InvalidWalletAddress
    return Web3.to_checksum_address(address.strip())


def identifier_hash(identifier: str) -> bytes:
    """``bytes32`` keccak hash of a UTF-8 identifier (quest id or pool id)."""
    return bytes(Web3.keccak(text=identifier))


def to_base_units(amount: Decimal | int | str, decimals: int = TOKEN_DECIMALS) -> int:
    """Scale a whole-token amount to the ledger's fixed-point integer.

    Raises ValueError if the amount is negative or has more fractional digits than `decimals`.
    """
    value = Decimal(str(amount)) * (Decimal(10) ** decimals)
    if value < 0 or value != value.to_integral_value():
        msg = f"amount {amount} is not representable with {decimals} decimals"
        raise ValueError(msg)
    return int(value)


def treasury_digest(quest_id: str, learner_address: str, amount: Decimal, decimals: int = TOKEN_DECIMALS) -> bytes:
    """Digest authorizing a direct treasury payout of `amount` to `learner_address`."""
    return bytes(
        Web3.solidity_keccak(
            ["bytes32", "address", "uint256"],
            [identifier_hash(quest_id), normalize_address(learner_address), to_base_units(amount, decimals)],
        )
    )


def pool_digest(pool_id: str, learner_address: str, quest_id: str) -> bytes:
    """Digest authorizing one pool distribution to `learner_address` for `quest_id`."""
    return bytes(
        Web3.solidity_keccak(
            ["bytes32", "address", "bytes32"],
            [identifier_hash(pool_id), normalize_address(learner_address), identifier_hash(quest_id)],
        )
    )


@dataclass(frozen=True)
class ClaimTicket:
    """A signed authorization for one payout. Self-describing; never persisted."""

    signature: str
    digest: str
    quest_id_bytes: str
    pool_id_bytes: str | None
    use_company_pool: bool
    signer: str
    contract_address: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class TicketIssuer:
    """Builds the path-specific digest and has the signing key sign it."""

    def __init__(
        self,
        signing_key: SigningKey,
        decimals: int = TOKEN_DECIMALS,
        treasury_contract: str | None = None,
        pool_contract: str | None = None,
    ) -> None:
        self.signing_key = signing_key
        self.decimals = decimals
        self.treasury_contract = treasury_contract or None
        self.pool_contract = pool_contract or None

    def build_digest(
        self,
        learner_address: str,
        quest_id: str,
        amount: Decimal,
        pool_id: str | None = None,
    ) -> bytes:
        if pool_id is not None:
            return pool_digest(pool_id, learner_address, quest_id)
        return treasury_digest(quest_id, learner_address, amount, self.decimals)

    def issue_claim_ticket(
        self,
        learner_address: str,
        quest_id: str,
        amount: Decimal,
        pool_id: str | None = None,
    ) -> ClaimTicket | None:
        """Sign a claim ticket, or return None when signing is unavailable or fails.

        No store access. Issuing twice for the same inputs yields the same digest.
        """
        if not self.signing_key.is_present:
            logger.warning("claim_ticket_unsigned", quest_id=quest_id, reason="signer key absent")
            return None

        try:
            digest = self.build_digest(learner_address, quest_id, amount, pool_id)
            signature = self.signing_key.sign_digest(digest)
        except Exception as exc:
            logger.error(
                "claim_ticket_unsigned",
                quest_id=quest_id,
                pool_id=pool_id,
                reason=str(exc),
                exc_info=exc,
            )
            return None

        ticket = ClaimTicket(
            signature=signature,
            digest=Web3.to_hex(digest),
            quest_id_bytes=Web3.to_hex(identifier_hash(quest_id)),
            pool_id_bytes=Web3.to_hex(identifier_hash(pool_id)) if pool_id is not None else None,
            use_company_pool=pool_id is not None,
            signer=self.signing_key.address or "",
            contract_address=self.pool_contract if pool_id is not None else self.treasury_contract,
        )
        logger.info(
            "claim_ticket_issued",
            quest_id=quest_id,
            learner=learner_address,
            use_company_pool=ticket.use_company_pool,
        )
        return ticket


def verify_ticket(ticket: ClaimTicket, expected_signer: str) -> bool:
    """True if the ticket's signature over its digest recovers to `expected_signer`."""
    try:
        recovered = recover_signer(Web3.to_bytes(hexstr=ticket.digest), ticket.signature)
    except Exception:
        logger.warning("claim_ticket_unverifiable", digest=ticket.digest, exc_info=True)
        return False
    return recovered.lower() == expected_signer.lower()

"""
Replacement transaction construction.
"""

from dataclasses import dataclass
from typing import Any, Dict

from eth_account.signers.local import LocalAccount


SELF_TRANSFER_GAS = 21000  # plain value transfer, no calldata


@dataclass(frozen=True)
class SelfTransfer:
    """A zero-value transfer from an account to itself at a fixed nonce."""
    chain_id: int
    address: str
    nonce: int
    gas_price_wei: int
    gas_limit: int = SELF_TRANSFER_GAS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a legacy (gasPrice) transaction dict for signing."""
        return {
            "to": self.address,
            "value": 0,
            "data": "0x",
            "gas": self.gas_limit,
            "gasPrice": self.gas_price_wei,
            "nonce": self.nonce,
            "chainId": self.chain_id,
        }


class TransactionBuilder:
    """Builds and signs replacement transactions."""

    @staticmethod
    def build_self_transfer(
        chain_id: int,
        address: str,
        nonce: int,
        gas_price_wei: int,
        gas_limit: int = SELF_TRANSFER_GAS,
    ) -> SelfTransfer:
        """
        Build the replacement for a stuck nonce.

        Args:
            chain_id: The chain ID
            address: Account address, used as both sender and recipient
            nonce: The exact nonce to occupy
            gas_price_wei: Legacy gas price
            gas_limit: Gas limit (21000 covers a plain transfer)

        Returns:
            SelfTransfer ready to be signed
        """
        if nonce < 0:
            raise ValueError("nonce must be non-negative")
        if gas_price_wei <= 0:
            raise ValueError("gas_price_wei must be positive")
        return SelfTransfer(
            chain_id=chain_id,
            address=address,
            nonce=nonce,
            gas_price_wei=gas_price_wei,
            gas_limit=gas_limit,
        )

    @staticmethod
    def sign(tx: SelfTransfer, account: LocalAccount) -> str:
        """Sign with the account key and return the raw transaction as 0x-hex."""
        signed = account.sign_transaction(tx.to_dict())
        return "0x" + bytes(signed.raw_transaction).hex()

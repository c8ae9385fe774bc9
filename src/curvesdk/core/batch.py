"""
Transaction assembly.

Groups built instructions into unsigned transactions. Signing and
submission are left to the caller.
"""

import logging
from base64 import b64encode
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from solders.hash import Hash
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction as SoldersTransaction

from ..constants import PACKET_DATA_SIZE
from .tx_builder import BuiltInstruction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transaction:
    """An ordered group of instructions that executes atomically."""
    instructions: Tuple[BuiltInstruction, ...]
    fee_payer: Pubkey
    recent_blockhash: Optional[Hash] = None
    last_valid_block_height: Optional[int] = None

    def to_message(self) -> Message:
        return Message.new_with_blockhash(
            [ix.to_instruction() for ix in self.instructions],
            self.fee_payer,
            self.recent_blockhash or Hash.default(),
        )

    def to_legacy(self) -> SoldersTransaction:
        """Unsigned solders transaction with placeholder signatures."""
        return SoldersTransaction.new_unsigned(self.to_message())

    def serialize(self) -> bytes:
        return bytes(self.to_legacy())

    def to_base64(self) -> str:
        return b64encode(self.serialize()).decode()

    @property
    def size(self) -> int:
        return len(self.serialize())

    def to_dict(self) -> Dict:
        return {
            "fee_payer": str(self.fee_payer),
            "recent_blockhash": str(self.recent_blockhash) if self.recent_blockhash else None,
            "last_valid_block_height": self.last_valid_block_height,
            "instructions": [ix.to_dict() for ix in self.instructions],
        }


class BatchTransactionAssembler:
    """Splits an instruction sequence into consecutive fixed-size transactions."""

    def __init__(
        self,
        fee_payer: Pubkey,
        recent_blockhash: Optional[Hash] = None,
        last_valid_block_height: Optional[int] = None,
    ):
        self.fee_payer = fee_payer
        self.recent_blockhash = recent_blockhash
        self.last_valid_block_height = last_valid_block_height

    def single(self, instructions: Sequence[BuiltInstruction]) -> Transaction:
        """Wrap all ``instructions`` in one transaction."""
        tx = Transaction(
            instructions=tuple(instructions),
            fee_payer=self.fee_payer,
            recent_blockhash=self.recent_blockhash,
            last_valid_block_height=self.last_valid_block_height,
        )
        self._check_size(tx)
        return tx

    def assemble(self, instructions: Sequence[BuiltInstruction], batch_size: int) -> List[Transaction]:
        """
        Chunk ``instructions`` into transactions of at most ``batch_size``.

        Order is preserved and only the last transaction may be shorter.
        Each transaction is independent: if one fails on chain the others
        are unaffected, and recovering from a partial failure is up to the
        caller.

        Raises:
            ValueError: batch_size is less than 1
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        instructions = list(instructions)
        transactions = [
            self.single(instructions[start:start + batch_size])
            for start in range(0, len(instructions), batch_size)
        ]
        logger.debug(
            "batch_assembled instructions=%d batch_size=%d transactions=%d",
            len(instructions), batch_size, len(transactions),
        )
        return transactions

    def _check_size(self, tx: Transaction) -> None:
        size = tx.size
        if size > PACKET_DATA_SIZE:
            logger.warning(
                "transaction_oversize size=%d limit=%d instructions=%d",
                size, PACKET_DATA_SIZE, len(tx.instructions),
            )

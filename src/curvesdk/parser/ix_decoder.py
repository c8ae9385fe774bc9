"""
Instruction decoder for captured program instructions.

Turns raw instructions from ledger history back into named operations with
decoded arguments and role-labeled accounts.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import base58
from solders.instruction import CompiledInstruction, Instruction
from solders.pubkey import Pubkey

from ..errors import DecodeFailure
from ..schema.codec import decode_fields
from ..schema.models import ProgramSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawInstruction:
    """An instruction as captured from the ledger: program, accounts, bytes."""
    program_id: Pubkey
    accounts: Tuple[Pubkey, ...]
    data: bytes

    @classmethod
    def from_instruction(cls, ix: Instruction) -> "RawInstruction":
        """From a solders ``Instruction``."""
        return cls(
            program_id=ix.program_id,
            accounts=tuple(meta.pubkey for meta in ix.accounts),
            data=bytes(ix.data),
        )

    @classmethod
    def from_compiled(cls, ix: CompiledInstruction, account_keys: Sequence[Pubkey]) -> "RawInstruction":
        """From a compiled instruction and the message's account keys."""
        return cls(
            program_id=account_keys[ix.program_id_index],
            accounts=tuple(account_keys[i] for i in bytes(ix.accounts)),
            data=bytes(ix.data),
        )

    @classmethod
    def from_json(cls, ix: Dict, account_keys: Sequence[str] = ()) -> "RawInstruction":
        """
        From an RPC instruction object.

        Accepts both the ``jsonParsed`` form (``programId``, ``accounts`` as
        addresses) and the ``json`` form (``programIdIndex``, account indices),
        with base58 instruction data.
        """
        if "programIdIndex" in ix:
            program_id = account_keys[ix["programIdIndex"]]
            accounts = [account_keys[i] for i in ix.get("accounts", [])]
        else:
            program_id = ix["programId"]
            accounts = ix.get("accounts", [])

        try:
            data = base58.b58decode(ix.get("data", ""))
        except ValueError as exc:
            raise DecodeFailure(f"Instruction data is not valid base58: {exc}") from exc

        return cls(
            program_id=Pubkey.from_string(program_id),
            accounts=tuple(Pubkey.from_string(a) for a in accounts),
            data=data,
        )


@dataclass(frozen=True)
class DecodedInstruction:
    """A program instruction with decoded arguments and labeled accounts."""
    name: str
    args: Dict[str, Any]
    accounts: Dict[str, Optional[Pubkey]]
    remaining_accounts: Tuple[Pubkey, ...] = field(default=())

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "args": {k: _jsonable(v) for k, v in self.args.items()},
            "accounts": {k: str(v) if v is not None else None for k, v in self.accounts.items()},
            "remaining_accounts": [str(a) for a in self.remaining_accounts],
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, Pubkey):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


class InstructionDecoder:
    """
    Decoder for one program schema.

    Instructions of other programs, or with an unknown discriminator, decode
    to None. Malformed data of a recognized instruction raises DecodeFailure.
    """

    def __init__(self, schema: ProgramSchema):
        self.schema = schema

    def decode(self, raw: RawInstruction, expected_program_id: Pubkey) -> Optional[DecodedInstruction]:
        """Decode ``raw`` if it targets ``expected_program_id``."""
        if raw.program_id != expected_program_id:
            return None

        ix_spec = self.schema.instruction_for_data(raw.data)
        if ix_spec is None:
            logger.debug("decode_unknown_discriminator data=%s", raw.data[:8].hex())
            return None

        args, _ = decode_fields(ix_spec.arguments, raw.data, 8, self.schema.get_type)

        if len(raw.accounts) < len(ix_spec.accounts):
            raise DecodeFailure(
                f"{ix_spec.name}: expected {len(ix_spec.accounts)} accounts, got {len(raw.accounts)}"
            )

        accounts: Dict[str, Optional[Pubkey]] = {}
        for role, pubkey in zip(ix_spec.accounts, raw.accounts):
            # An optional role bound to the program id was not supplied
            if role.is_optional and pubkey == expected_program_id:
                accounts[role.name] = None
            else:
                accounts[role.name] = pubkey

        return DecodedInstruction(
            name=ix_spec.name,
            args=args,
            accounts=accounts,
            remaining_accounts=raw.accounts[len(ix_spec.accounts):],
        )

    def decode_transaction(self, tx_json: Dict, program_id: Pubkey) -> List[DecodedInstruction]:
        """Decode every top-level instruction of a ``getTransaction`` response."""
        message = tx_json["transaction"]["message"]
        account_keys = [
            key["pubkey"] if isinstance(key, dict) else key
            for key in message.get("accountKeys", [])
        ]
        loaded = (tx_json.get("meta") or {}).get("loadedAddresses") or {}
        account_keys += loaded.get("writable", []) + loaded.get("readonly", [])

        decoded = []
        for ix in message.get("instructions", []):
            # Instructions the node already parsed belong to native programs
            if "parsed" in ix:
                continue
            result = self.decode(RawInstruction.from_json(ix, account_keys), program_id)
            if result is not None:
                decoded.append(result)
        return decoded

    def parse_ix(
        self,
        raw: RawInstruction,
        program_id: Pubkey,
        name: str,
    ) -> Optional[Dict[str, Optional[Pubkey]]]:
        """Role map of ``raw`` if it decodes to the instruction ``name``."""
        decoded = self.decode(raw, program_id)
        if decoded is None or decoded.name != self.schema_name(name):
            return None
        return decoded.accounts

    def schema_name(self, name: str) -> str:
        ix_spec = self.schema.get_instruction(name)
        return ix_spec.name if ix_spec else name

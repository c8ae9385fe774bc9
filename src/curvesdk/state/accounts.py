"""Program and user state accounts."""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from solders.pubkey import Pubkey

from ..errors import DecodeFailure
from ..schema.codec import decode_fields
from ..schema.models import ProgramSchema

DISCRIMINATOR_SIZE = 8


def decode_account(schema: ProgramSchema, name: str, data: bytes) -> Dict[str, Any]:
    """
    Decode raw account data for the account struct ``name``.

    Accounts may be allocated larger than their layout; trailing bytes are
    ignored.

    Raises:
        DecodeFailure: Unknown struct, wrong discriminator or short data
    """
    spec = schema.get_account(name)
    if spec is None:
        raise DecodeFailure(f"Account struct {name!r} is not part of schema {schema.version}")

    prefix = bytes(data[:DISCRIMINATOR_SIZE])
    if prefix != spec.discriminator:
        raise DecodeFailure(
            f"Discriminator mismatch for {spec.name}: expected "
            f"{spec.discriminator.hex()}, got {prefix.hex()}"
        )

    values, _ = decode_fields(spec.fields, data, DISCRIMINATOR_SIZE, schema.get_type)
    return values


def _from_fields(cls, values: Dict[str, Any], aliases: Dict[str, str]):
    values = dict(values)
    for old, new in aliases.items():
        if old in values and new not in values:
            values[new] = values.pop(old)
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in values.items() if k in known})


@dataclass(frozen=True)
class ProgramState:
    """Global program state (``App`` account)."""
    name: str
    symbol: str
    decimals: int
    dividend_fee: int
    token_initial_price: int
    token_incremental_price: int
    token_supply: int
    magnitude: int
    staking_requirement: int
    profit_per_share: int
    is_initialized: bool
    contract_balance: int = 0
    is_initial_phase: bool = False

    @classmethod
    def from_fields(cls, values: Dict[str, Any]) -> "ProgramState":
        # Legacy layout called the initial phase "only_ambassadors"
        return _from_fields(cls, values, {"only_ambassadors": "is_initial_phase"})


@dataclass(frozen=True)
class UserState:
    """Per-owner state (``User`` account)."""
    authority: Pubkey
    balance: int
    referred_balance: int
    is_admin: bool
    is_amb: bool
    payout: int
    referred_by: Optional[Pubkey] = None
    usable_locked: int = 0
    total_locked: int = 0
    locked_starttime: int = 0
    locked_endtime: int = 0

    @classmethod
    def from_fields(cls, values: Dict[str, Any]) -> "UserState":
        return _from_fields(cls, values, {"is_ambassador": "is_amb"})

    @property
    def has_referrer(self) -> bool:
        return self.referred_by is not None and self.referred_by != Pubkey.default()

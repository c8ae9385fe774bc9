"""
Instruction Builder: turns program operations into encoded instructions.
"""

import logging
from base64 import b64encode
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from ..constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    MPL_TOKEN_METADATA_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    SYSVAR_INSTRUCTIONS_PUBKEY,
    SYSVAR_RENT_PUBKEY,
    TOKEN_2022_PROGRAM_ID,
)
from ..errors import SchemaMismatch
from ..schema.codec import encode_value
from ..schema.models import InstructionSpec, ProgramSchema
from .pdas import find_metadata_pda, find_mint_pda, find_program_pda, find_user_ata, find_user_pda

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountBinding:
    """An address bound to a named role of an instruction."""
    role: str
    pubkey: Pubkey
    is_writable: bool = False
    is_signer: bool = False
    is_optional: bool = False

    def to_meta(self) -> AccountMeta:
        return AccountMeta(pubkey=self.pubkey, is_signer=self.is_signer, is_writable=self.is_writable)


@dataclass(frozen=True)
class BuiltInstruction:
    """An encoded instruction ready to be placed in a transaction."""
    name: str
    program_id: Pubkey
    discriminator: bytes
    accounts: Tuple[AccountBinding, ...]
    data: bytes

    @property
    def data_base64(self) -> str:
        return b64encode(self.data).decode()

    @property
    def signers(self) -> List[Pubkey]:
        return [a.pubkey for a in self.accounts if a.is_signer]

    def account(self, role: str) -> Optional[Pubkey]:
        """Address bound to ``role``, if the role exists."""
        for binding in self.accounts:
            if binding.role == role:
                return binding.pubkey
        return None

    def to_instruction(self) -> Instruction:
        """Convert to a solders ``Instruction``."""
        return Instruction(
            program_id=self.program_id,
            accounts=[a.to_meta() for a in self.accounts],
            data=self.data,
        )

    def to_dict(self) -> Dict:
        return {
            "instruction": self.name,
            "program_id": str(self.program_id),
            "accounts": [
                {
                    "role": a.role,
                    "pubkey": str(a.pubkey),
                    "is_signer": a.is_signer,
                    "is_writable": a.is_writable,
                }
                for a in self.accounts
            ],
            "data_base64": self.data_base64,
        }


@dataclass(frozen=True)
class TokenMetadata:
    """Token metadata passed to ``initialize``."""
    name: str
    symbol: str
    uri: str = ""
    decimals: int = 9


class InstructionBuilder:
    """
    Builds program instructions from operation arguments.

    Handles:
    - Instruction data encoding (Anchor discriminator + args)
    - Account resolution (PDAs, ATAs, well-known programs)
    - Optional accounts, bound to the program id when absent
    """

    def __init__(self, schema: ProgramSchema, program_id: Pubkey):
        """
        Initialize instruction builder.

        Args:
            schema: Program schema for instruction specs
            program_id: Deployed program address
        """
        self.schema = schema
        self.program_id = program_id
        self.program_data, _ = find_program_pda(program_id)
        self.mint, _ = find_mint_pda(program_id)

    @property
    def absent_account(self) -> Pubkey:
        """Placeholder bound to an optional role that was not supplied."""
        return self.program_id

    def build(
        self,
        name: str,
        accounts: Dict[str, Pubkey],
        args: Optional[Dict[str, Any]] = None,
    ) -> BuiltInstruction:
        """
        Build one instruction.

        Args:
            name: Instruction name (snake_case or camelCase)
            accounts: role name -> address; extra roles are ignored
            args: argument name -> value; extra names are ignored

        Returns:
            BuiltInstruction with accounts in declared order

        Raises:
            SchemaMismatch: Unknown instruction, missing required role or argument,
                or an argument that does not fit its declared type
        """
        ix_spec = self.schema.get_instruction(name)
        if ix_spec is None:
            raise SchemaMismatch(
                f"Instruction {name!r} is not part of schema {self.schema.version}"
            )

        data = self._encode_instruction_data(ix_spec, args or {})
        bindings = self._build_accounts(ix_spec, accounts)

        ix = BuiltInstruction(
            name=ix_spec.name,
            program_id=self.program_id,
            discriminator=ix_spec.discriminator,
            accounts=bindings,
            data=data,
        )
        logger.debug(
            "instruction_built name=%s accounts=%d data_len=%d",
            ix.name, len(ix.accounts), len(ix.data),
        )
        return ix

    def _encode_instruction_data(self, ix_spec: InstructionSpec, arguments: Dict[str, Any]) -> bytes:
        """Encode instruction data with Anchor discriminator."""
        return ix_spec.discriminator + self._encode_arguments(ix_spec, arguments)

    def _encode_arguments(self, ix_spec: InstructionSpec, arguments: Dict[str, Any]) -> bytes:
        """Encode instruction arguments in declared order."""
        data = b""

        for arg in ix_spec.arguments:
            is_option = isinstance(arg.field_type, dict) and "option" in arg.field_type
            if arg.name not in arguments and not is_option:
                raise SchemaMismatch(f"{ix_spec.name}: missing argument {arg.name!r}")

            value = arguments.get(arg.name)
            if is_dataclass(value):
                value = asdict(value)

            try:
                data += encode_value(arg.field_type, value, self.schema.get_type)
            except (KeyError, TypeError, ValueError, OverflowError) as exc:
                raise SchemaMismatch(
                    f"{ix_spec.name}: argument {arg.name!r} does not fit {arg.field_type}: {exc}"
                ) from exc

        return data

    def _build_accounts(
        self,
        ix_spec: InstructionSpec,
        accounts: Dict[str, Pubkey],
    ) -> Tuple[AccountBinding, ...]:
        """Build account list for instruction."""
        bindings = []

        for role in ix_spec.accounts:
            pubkey = accounts.get(role.name)
            if pubkey is None:
                if not role.is_optional:
                    raise SchemaMismatch(f"{ix_spec.name}: missing account {role.name!r}")
                # Anchor reads the program id as "not provided"
                bindings.append(AccountBinding(
                    role=role.name,
                    pubkey=self.absent_account,
                    is_writable=False,
                    is_signer=False,
                    is_optional=True,
                ))
                continue

            bindings.append(AccountBinding(
                role=role.name,
                pubkey=pubkey,
                is_writable=role.is_writable,
                is_signer=role.is_signer,
                is_optional=role.is_optional,
            ))

        return tuple(bindings)

    # --- Account sets ---

    def _program_accounts(self) -> Dict[str, Pubkey]:
        """Roles shared by every instruction of the program."""
        return {
            "program_data": self.program_data,
            "mint": self.mint,
            "system_program": SYSTEM_PROGRAM_ID,
            "token_program": TOKEN_2022_PROGRAM_ID,
            "associated_token_program": ASSOCIATED_TOKEN_PROGRAM_ID,
        }

    def _user_accounts(self, user: Pubkey) -> Dict[str, Pubkey]:
        """The acting user's wallet, state PDA and token account."""
        accounts = self._program_accounts()
        accounts.update({
            "user": user,
            "user_data": find_user_pda(user, self.program_id)[0],
            "user_ata": find_user_ata(self.mint, user)[0],
        })
        return accounts

    def _admin_accounts(self, admin: Pubkey, user: Pubkey) -> Dict[str, Pubkey]:
        accounts = self._program_accounts()
        accounts.update({
            "admin": admin,
            "admin_data": find_user_pda(admin, self.program_id)[0],
            "user_data": find_user_pda(user, self.program_id)[0],
        })
        return accounts

    # --- Operations ---

    def initialize(self, admin: Pubkey, metadata: Optional[TokenMetadata] = None) -> BuiltInstruction:
        """Create program state, the admin's user state and the token mint."""
        accounts = self._program_accounts()
        accounts.update({
            "admin": admin,
            "admin_data": find_user_pda(admin, self.program_id)[0],
            "metadata": find_metadata_pda(self.mint)[0],
            "rent": SYSVAR_RENT_PUBKEY,
            "sysvar_instructions": SYSVAR_INSTRUCTIONS_PUBKEY,
            "token_metadata_program": MPL_TOKEN_METADATA_PROGRAM_ID,
        })
        args = {} if metadata is None else {"metadata": metadata}
        return self.build("initialize", accounts, args)

    def buy(self, user: Pubkey, amount: int, referrer: Optional[Pubkey] = None) -> BuiltInstruction:
        """Buy tokens for ``amount`` lamports, optionally crediting a referrer."""
        accounts = self._user_accounts(user)
        if referrer is not None:
            accounts["referred_by_data"] = find_user_pda(referrer, self.program_id)[0]
        return self.build("buy", accounts, {"lamports_to_send": amount, "referred_by": referrer})

    def reinvest(self, user: Pubkey) -> BuiltInstruction:
        return self.build("reinvest", self._user_accounts(user))

    def exit(self, user: Pubkey) -> BuiltInstruction:
        return self.build("exit", self._user_accounts(user))

    def withdraw(self, user: Pubkey) -> BuiltInstruction:
        return self.build("withdraw", self._user_accounts(user))

    def sell(self, user: Pubkey, amount: int) -> BuiltInstruction:
        return self.build("sell", self._user_accounts(user), {"lamports_to_send": amount})

    def transfer(self, user: Pubkey, to: Pubkey, amount: int) -> BuiltInstruction:
        """Transfer tokens to ``to``; a self-transfer is left for the program to reject."""
        accounts = self._user_accounts(user)
        accounts.update({
            "to_info": to,
            "to_data": find_user_pda(to, self.program_id)[0],
            "to_ata": find_user_ata(self.mint, to)[0],
        })
        return self.build("transfer", accounts, {"to": to, "lamports_to_send": amount})

    def distribute_token(
        self,
        user: Pubkey,
        recipients: Iterable[Pubkey],
        amount: int,
        payout: int,
    ) -> List[BuiltInstruction]:
        """One ``distribute_token`` instruction per recipient, in recipient order."""
        base = self._program_accounts()
        base.update({
            "user": user,
            "from_data": find_user_pda(user, self.program_id)[0],
            "from_ata": find_user_ata(self.mint, user)[0],
        })

        instructions = []
        for recipient in recipients:
            accounts = dict(base)
            accounts.update({
                "receipient_info": recipient,
                "receipient_data": find_user_pda(recipient, self.program_id)[0],
                "receipient_ata": find_user_ata(self.mint, recipient)[0],
            })
            instructions.append(self.build(
                "distribute_token",
                accounts,
                {"amount_of_tokens": amount, "update_payout_by": payout, "receipient": recipient},
            ))
        return instructions

    def disable_initial_stage(self, user: Pubkey) -> BuiltInstruction:
        return self.build("disable_initial_stage", self._user_accounts(user))

    def set_administrator(self, admin: Pubkey, user: Pubkey, status: bool) -> BuiltInstruction:
        return self.build(
            "set_administrator", self._admin_accounts(admin, user), {"user": user, "status": status}
        )

    def set_ambassador(self, admin: Pubkey, user: Pubkey, status: bool) -> BuiltInstruction:
        return self.build(
            "set_ambassador", self._admin_accounts(admin, user), {"user": user, "status": status}
        )

    def set_staking_requirement(self, user: Pubkey, amount: int) -> BuiltInstruction:
        return self.build(
            "set_staking_requirement", self._user_accounts(user), {"amount_of_tokens": amount}
        )

    # --- Read-only queries ---

    def my_dividends(self, user: Pubkey, including_ref: bool) -> BuiltInstruction:
        accounts = {
            "program_data": self.program_data,
            "user_data": find_user_pda(user, self.program_id)[0],
        }
        return self.build("my_dividends", accounts, {"including_ref": including_ref})

    def sell_price(self) -> BuiltInstruction:
        return self.build("sell_price", {"program_data": self.program_data})

    def buy_price(self) -> BuiltInstruction:
        return self.build("buy_price", {"program_data": self.program_data})

    def calculate_lamports_received(self, tokens: int) -> BuiltInstruction:
        return self.build(
            "calculate_lamports_received", {"program_data": self.program_data}, {"tokens": tokens}
        )

    def calculate_tokens_received(self, lamports: int) -> BuiltInstruction:
        return self.build(
            "calculate_tokens_received", {"program_data": self.program_data}, {"lamports": lamports}
        )


def create_token_account_ix(payer: Pubkey, owner: Pubkey, mint: Pubkey) -> BuiltInstruction:
    """
    Create the token-2022 associated token account of ``owner`` for ``mint``.

    The caller is responsible for checking that the account does not exist yet.
    """
    ata, _ = find_user_ata(mint, owner)
    accounts = (
        AccountBinding("payer", payer, is_writable=True, is_signer=True),
        AccountBinding("associated_token", ata, is_writable=True),
        AccountBinding("owner", owner),
        AccountBinding("mint", mint),
        AccountBinding("system_program", SYSTEM_PROGRAM_ID),
        AccountBinding("token_program", TOKEN_2022_PROGRAM_ID),
    )
    return BuiltInstruction(
        name="create_associated_token_account",
        program_id=ASSOCIATED_TOKEN_PROGRAM_ID,
        discriminator=b"",
        accounts=accounts,
        data=b"",
    )

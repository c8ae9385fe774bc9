"""
High-level client for the bonding-curve program.

Wraps instruction building, transaction assembly, account fetching and
read-only queries behind one object bound to an RPC endpoint.
"""

import logging
from base64 import b64decode
from typing import Iterable, List, Optional, Tuple

from solders.hash import Hash
from solders.pubkey import Pubkey

from .config import ClientConfig
from .constants import DEFAULT_PROGRAM_ID, TOKEN_2022_PROGRAM_ID
from .core.batch import BatchTransactionAssembler, Transaction
from .core.pdas import find_program_pda, find_user_ata, find_user_pda
from .core.rpc import SolanaRpcClient
from .core.simulator import ReadOnlyInvoker, SimulationResult
from .core.tx_builder import BuiltInstruction, InstructionBuilder, TokenMetadata, create_token_account_ix
from .errors import AccountNotFound
from .parser.ix_decoder import InstructionDecoder
from .schema.registry import SchemaRegistry, default_registry
from .state.accounts import ProgramState, UserState, decode_account

logger = logging.getLogger(__name__)


class CurveClient:
    """
    SDK entry point.

    ``create_*_tx`` methods return unsigned transactions carrying a fresh
    blockhash; signing and submission are up to the caller.
    """

    def __init__(
        self,
        rpc: SolanaRpcClient,
        payer: Pubkey,
        program_id: Pubkey = DEFAULT_PROGRAM_ID,
        schema_version: str = "v2",
        registry: Optional[SchemaRegistry] = None,
    ):
        """
        Args:
            rpc: Network collaborator
            payer: Fee payer of read-only simulations
            program_id: Deployed program address
            schema_version: Program layout to build and decode against
            registry: Schema source (bundled versions by default)
        """
        self.rpc = rpc
        self.payer = payer
        self.program_id = program_id
        self.schema = (registry or default_registry()).get(schema_version)
        self.builder = InstructionBuilder(self.schema, program_id)
        self.decoder = InstructionDecoder(self.schema)
        self.invoker = ReadOnlyInvoker(rpc, self.schema, program_id, payer)

    @classmethod
    def from_config(cls, config: ClientConfig, payer: Pubkey) -> "CurveClient":
        rpc = SolanaRpcClient(config.rpc_url, commitment=config.commitment, timeout=config.timeout)
        return cls(rpc, payer, program_id=config.program_id, schema_version=config.schema_version)

    # --- Transactions ---

    async def _assembler(self, fee_payer: Pubkey) -> BatchTransactionAssembler:
        latest = await self.rpc.get_latest_blockhash("confirmed")
        return BatchTransactionAssembler(
            fee_payer,
            recent_blockhash=Hash.from_string(latest["blockhash"]),
            last_valid_block_height=latest["lastValidBlockHeight"],
        )

    async def _to_tx(self, fee_payer: Pubkey, ix: BuiltInstruction) -> Transaction:
        assembler = await self._assembler(fee_payer)
        tx = assembler.single([ix])
        logger.debug("tx_created name=%s fee_payer=%s", ix.name, fee_payer)
        return tx

    async def create_initialize_tx(self, payer: Pubkey, metadata: Optional[TokenMetadata] = None) -> Transaction:
        return await self._to_tx(payer, self.builder.initialize(payer, metadata))

    async def create_buy_tx(self, payer: Pubkey, amount: int, referrer: Optional[Pubkey] = None) -> Transaction:
        return await self._to_tx(payer, self.builder.buy(payer, amount, referrer))

    async def create_reinvest_tx(self, payer: Pubkey) -> Transaction:
        return await self._to_tx(payer, self.builder.reinvest(payer))

    async def create_exit_tx(self, payer: Pubkey) -> Transaction:
        return await self._to_tx(payer, self.builder.exit(payer))

    async def create_transfer_tx(self, payer: Pubkey, to: Pubkey, amount: int) -> Transaction:
        return await self._to_tx(payer, self.builder.transfer(payer, to, amount))

    async def create_withdraw_tx(self, payer: Pubkey) -> Transaction:
        return await self._to_tx(payer, self.builder.withdraw(payer))

    async def create_sell_tx(self, payer: Pubkey, amount: int) -> Transaction:
        return await self._to_tx(payer, self.builder.sell(payer, amount))

    async def create_disable_initial_stage_tx(self, payer: Pubkey) -> Transaction:
        return await self._to_tx(payer, self.builder.disable_initial_stage(payer))

    async def create_set_administrator_tx(self, payer: Pubkey, user: Pubkey, status: bool) -> Transaction:
        return await self._to_tx(payer, self.builder.set_administrator(payer, user, status))

    async def create_set_ambassador_tx(self, payer: Pubkey, user: Pubkey, status: bool) -> Transaction:
        return await self._to_tx(payer, self.builder.set_ambassador(payer, user, status))

    async def create_set_staking_requirement_tx(self, payer: Pubkey, amount: int) -> Transaction:
        return await self._to_tx(payer, self.builder.set_staking_requirement(payer, amount))

    async def create_distribute_token_txs(
        self,
        payer: Pubkey,
        recipients: Iterable[Pubkey],
        batch_size: int,
        amount: int,
        payout: int,
    ) -> List[Transaction]:
        """
        One ``distribute_token`` instruction per recipient, chunked into
        transactions of ``batch_size``.

        The transactions are independent; if some land and others fail, the
        caller decides whether to resubmit the remainder.
        """
        instructions = self.builder.distribute_token(payer, recipients, amount, payout)
        assembler = await self._assembler(payer)
        return assembler.assemble(instructions, batch_size)

    async def token_account_ix(self, owner: Pubkey, payer: Optional[Pubkey] = None) -> Optional[BuiltInstruction]:
        """ATA creation instruction for ``owner``, or None if the account already exists."""
        ata, _ = find_user_ata(self.builder.mint, owner)
        info = await self.rpc.get_account_info(str(ata))
        if info is not None and info.get("owner") == str(TOKEN_2022_PROGRAM_ID):
            return None
        return create_token_account_ix(payer or owner, owner, self.builder.mint)

    # --- Accounts ---

    def find_program_pda(self) -> Tuple[Pubkey, int]:
        return find_program_pda(self.program_id)

    def find_user_pda(self, owner: Pubkey) -> Tuple[Pubkey, int]:
        return find_user_pda(owner, self.program_id)

    async def _fetch_account_data(self, address: Pubkey) -> bytes:
        info = await self.rpc.get_account_info(str(address))
        if info is None:
            raise AccountNotFound(address)
        return b64decode(info["data"][0])

    async def fetch_program_info(self) -> Tuple[ProgramState, Pubkey]:
        """Program state and its address."""
        address, _ = self.find_program_pda()
        data = await self._fetch_account_data(address)
        return ProgramState.from_fields(decode_account(self.schema, "App", data)), address

    async def fetch_user_info(self, owner: Pubkey) -> Tuple[UserState, Pubkey]:
        """User state of ``owner`` and its address."""
        address, _ = self.find_user_pda(owner)
        data = await self._fetch_account_data(address)
        return UserState.from_fields(decode_account(self.schema, "User", data)), address

    async def is_initialized(self, pda: Optional[Pubkey] = None) -> bool:
        address = pda or self.find_program_pda()[0]
        return await self.rpc.get_account_info(str(address)) is not None

    # --- Read-only queries ---

    async def read_only(self, ix: BuiltInstruction) -> SimulationResult:
        return await self.invoker.invoke(ix)

    async def my_dividends(self, user: Pubkey, including_ref: bool) -> SimulationResult:
        return await self.read_only(self.builder.my_dividends(user, including_ref))

    async def sell_price(self) -> SimulationResult:
        return await self.read_only(self.builder.sell_price())

    async def buy_price(self) -> SimulationResult:
        return await self.read_only(self.builder.buy_price())

    async def calculate_lamports_received(self, tokens: int) -> SimulationResult:
        return await self.read_only(self.builder.calculate_lamports_received(tokens))

    async def calculate_tokens_received(self, lamports: int) -> SimulationResult:
        return await self.read_only(self.builder.calculate_tokens_received(lamports))

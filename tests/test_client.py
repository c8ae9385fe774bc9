from base64 import b64encode

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey

from curvesdk import ClientConfig, CurveClient
from curvesdk.constants import TOKEN_2022_PROGRAM_ID
from curvesdk.core.pdas import find_program_pda, find_user_ata, find_user_pda
from curvesdk.core.rpc import SolanaRpcClient
from curvesdk.errors import AccountNotFound
from curvesdk.schema.codec import encode_fields

from test_accounts import APP_VALUES


@pytest.fixture
def client(fake_rpc, user, program_id):
    return CurveClient(fake_rpc, user, program_id=program_id)


def account_info(data, owner):
    return {"data": [b64encode(data).decode(), "base64"], "owner": str(owner), "lamports": 1}


async def test_buy_tx_has_fresh_blockhash(client, fake_rpc, user):
    tx = await client.create_buy_tx(user, 1000)

    assert fake_rpc.blockhash_requests == 1
    assert tx.recent_blockhash == Hash.default()
    assert tx.last_valid_block_height == 100
    assert tx.fee_payer == user
    assert [ix.name for ix in tx.instructions] == ["buy"]


async def test_single_instruction_transactions(client, user):
    other = Pubkey.new_unique()
    txs = [
        await client.create_reinvest_tx(user),
        await client.create_exit_tx(user),
        await client.create_transfer_tx(user, other, 1),
        await client.create_withdraw_tx(user),
        await client.create_sell_tx(user, 1),
        await client.create_disable_initial_stage_tx(user),
        await client.create_set_administrator_tx(user, other, True),
        await client.create_set_ambassador_tx(user, other, True),
        await client.create_set_staking_requirement_tx(user, 1),
    ]
    assert [tx.instructions[0].name for tx in txs] == [
        "reinvest",
        "exit",
        "transfer",
        "withdraw",
        "sell",
        "disable_initial_stage",
        "set_administrator",
        "set_ambassador",
        "set_staking_requirement",
    ]


async def test_distribute_token_txs(client, user):
    recipients = [Pubkey.new_unique() for _ in range(5)]
    txs = await client.create_distribute_token_txs(user, recipients, 2, 10, 0)

    assert [len(tx.instructions) for tx in txs] == [2, 2, 1]
    decoded = [ix.account("receipient_info") for tx in txs for ix in tx.instructions]
    assert decoded == recipients


async def test_fetch_program_info(client, fake_rpc, schema, program_id):
    spec = schema.get_account("App")
    address = find_program_pda(program_id)[0]
    data = spec.discriminator + encode_fields(spec.fields, APP_VALUES)
    fake_rpc.accounts[str(address)] = account_info(data, program_id)

    state, pubkey = await client.fetch_program_info()

    assert pubkey == address
    assert state.symbol == "CRV"
    assert await client.is_initialized()


async def test_fetch_missing_user(client, user, program_id):
    with pytest.raises(AccountNotFound) as exc_info:
        await client.fetch_user_info(user)
    assert exc_info.value.address == find_user_pda(user, program_id)[0]
    assert not await client.is_initialized()


async def test_read_only_query(client, fake_rpc, user):
    payload = b64encode((123).to_bytes(16, "little")).decode()
    fake_rpc.simulation = {"value": {"err": None, "logs": [], "returnData": {"data": [payload, "base64"]}}}

    assert (await client.my_dividends(user, True)).value == 123
    assert (await client.sell_price()).value == 123
    assert (await client.buy_price()).value == 123
    assert (await client.calculate_lamports_received(1)).value == 123
    assert (await client.calculate_tokens_received(1)).value == 123
    assert len(fake_rpc.simulated) == 5


async def test_token_account_ix(client, fake_rpc, user, program_id):
    ix = await client.token_account_ix(user)
    assert ix is not None
    assert ix.account("owner") == user

    ata = find_user_ata(client.builder.mint, user)[0]
    fake_rpc.accounts[str(ata)] = account_info(b"", TOKEN_2022_PROGRAM_ID)
    assert await client.token_account_ix(user) is None


def test_from_config(user):
    program_id = Pubkey.new_unique()
    config = ClientConfig(rpc_url="http://localhost:8899", program_id=program_id, schema_version="v1", timeout=5.0)

    client = CurveClient.from_config(config, user)

    assert isinstance(client.rpc, SolanaRpcClient)
    assert client.rpc.rpc_url == "http://localhost:8899"
    assert client.rpc.timeout == 5.0
    assert client.schema.version == "v1"
    assert client.program_id == program_id

import json
from base64 import b64decode, b64encode

import pytest
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from curvesdk.core.simulator import ReadOnlyInvoker, extract_error_detail, find_return_payload
from curvesdk.core.tx_builder import InstructionBuilder
from curvesdk.errors import DecodeFailure, SimulationError
from curvesdk.schema import SchemaRegistry

COUNTER_IDL = {
    "name": "counter",
    "instructions": [
        {
            "name": "getCount",
            "accounts": [{"name": "counter", "isMut": False, "isSigner": False}],
            "args": [],
            "returns": "u64",
        },
    ],
}


def b64(data):
    return b64encode(data).decode()


def simulation(err=None, logs=(), return_data=None, units=None):
    value = {"err": err, "logs": list(logs), "returnData": return_data}
    if units is not None:
        value["unitsConsumed"] = units
    return {"context": {"slot": 1}, "value": value}


@pytest.fixture
def payer():
    return Pubkey.new_unique()


@pytest.fixture
def invoker(fake_rpc, schema, program_id, payer):
    return ReadOnlyInvoker(fake_rpc, schema, program_id, payer)


async def test_program_return_log_is_decoded(fake_rpc, program_id, payer):
    schema = SchemaRegistry().register_idl(COUNTER_IDL, "counter")
    ix = InstructionBuilder(schema, program_id).build("get_count", {"counter": Pubkey.new_unique()})
    logs = [
        f"Program {program_id} invoke [1]",
        f"Program return: {program_id} {b64((1000).to_bytes(8, 'little'))}",
        f"Program {program_id} success",
    ]
    fake_rpc.simulation = simulation(logs=logs, units=1500)

    result = await ReadOnlyInvoker(fake_rpc, schema, program_id, payer).invoke(ix)

    assert result.value == 1000
    assert result.logs == tuple(logs)
    assert result.units_consumed == 1500


async def test_return_data_is_preferred(fake_rpc, invoker, builder, program_id):
    logs = [f"Program return: {program_id} {b64((1).to_bytes(16, 'little'))}"]
    return_data = {"programId": str(program_id), "data": [b64((5).to_bytes(16, "little")), "base64"]}
    fake_rpc.simulation = simulation(logs=logs, return_data=return_data)

    result = await invoker.invoke(builder.sell_price())
    assert result.value == 5


async def test_transaction_sent_for_simulation(fake_rpc, invoker, builder, payer):
    fake_rpc.simulation = simulation(return_data={"data": [b64((9).to_bytes(16, "little")), "base64"]})

    await invoker.invoke(builder.buy_price())

    assert len(fake_rpc.simulated) == 1
    encoded, options = fake_rpc.simulated[0]
    assert options["sigVerify"] is False
    assert options["encoding"] == "base64"
    tx = VersionedTransaction.from_bytes(b64decode(encoded))
    assert tx.message.account_keys[0] == payer
    assert len(tx.message.instructions) == 1


async def test_mutating_instruction_is_not_simulated(fake_rpc, invoker, builder, user):
    result = await invoker.invoke(builder.buy(user, 10))

    assert result.value is None
    assert result.logs == ()
    assert fake_rpc.simulated == []


async def test_no_payload_yields_none(fake_rpc, invoker, builder):
    fake_rpc.simulation = simulation(logs=["Program log: nothing to see"])
    result = await invoker.invoke(builder.sell_price())
    assert result.value is None
    assert result.logs == ("Program log: nothing to see",)


async def test_error_message_is_extracted(fake_rpc, invoker, builder):
    err = {"InstructionError": [0, {"Custom": 6006}]}
    logs = [
        "Program log: Instruction: SellPrice",
        "Program log: AnchorError occurred. Error Code: InsufficientBalance. Error Number: 6006. Error Message: Insufficient funds",
        "Program failed",
    ]
    fake_rpc.simulation = simulation(err=err, logs=logs)

    with pytest.raises(SimulationError) as exc_info:
        await invoker.invoke(builder.sell_price())

    error = exc_info.value
    assert error.detail == "Insufficient funds"
    assert error.logs == logs
    assert error.error == err
    assert error.custom_code == 6006
    assert error.program_error.name == "InsufficientBalance"


async def test_error_without_message_uses_raw_error(fake_rpc, invoker, builder):
    err = {"InstructionError": [0, "InvalidAccountData"]}
    fake_rpc.simulation = simulation(err=err, logs=["Program failed"])

    with pytest.raises(SimulationError) as exc_info:
        await invoker.invoke(builder.sell_price())

    assert exc_info.value.detail == json.dumps(err, sort_keys=True)
    assert exc_info.value.program_error is None


async def test_payload_with_wrong_length(fake_rpc, invoker, builder):
    fake_rpc.simulation = simulation(return_data={"data": [b64(b"\x01\x02\x03\x04"), "base64"]})
    with pytest.raises(DecodeFailure):
        await invoker.invoke(builder.sell_price())


async def test_payload_with_trailing_bytes(fake_rpc, invoker, builder):
    fake_rpc.simulation = simulation(return_data={"data": [b64(b"\x00" * 17), "base64"]})
    with pytest.raises(DecodeFailure):
        await invoker.invoke(builder.sell_price())


async def test_payload_not_base64(fake_rpc, invoker, builder, program_id):
    fake_rpc.simulation = simulation(logs=[f"Program return: {program_id} !!notbase64!!"])
    with pytest.raises(DecodeFailure):
        await invoker.invoke(builder.sell_price())


async def test_payload_with_non_ascii_character(fake_rpc, invoker, builder, program_id):
    fake_rpc.simulation = simulation(logs=[f"Program return: {program_id} AAAA\u00e9"])
    with pytest.raises(DecodeFailure):
        await invoker.invoke(builder.sell_price())


def test_last_error_message_wins():
    logs = ["Error Message: first", "other", "Error Message: second"]
    assert extract_error_detail(logs, "x") == "second"
    assert extract_error_detail([], "AccountNotFound") == "AccountNotFound"


def test_return_log_of_other_program_is_ignored(program_id):
    other = Pubkey.new_unique()
    value = {"logs": [f"Program return: {other} AQ=="]}
    assert find_return_payload(value, program_id) is None

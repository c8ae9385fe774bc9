import hashlib

import pytest

from curvesdk.errors import SchemaMismatch
from curvesdk.schema import (
    IDLParser,
    InstructionSpec,
    ProgramSchema,
    SchemaRegistry,
    default_registry,
    get_schema,
)
from curvesdk.schema.models import to_pascal_case, to_snake_case

VIEWS = {
    "my_dividends",
    "sell_price",
    "buy_price",
    "calculate_lamports_received",
    "calculate_tokens_received",
}

NEW_FORMAT_IDL = {
    "address": "8yCmCyhDsLzof54Pbuj2dBxAKSyLosdFcR7Aov894NJk",
    "metadata": {"name": "counter"},
    "instructions": [
        {
            "name": "get_count",
            "discriminator": [1, 2, 3, 4, 5, 6, 7, 8],
            "accounts": [{"name": "counter"}],
            "args": [],
            "returns": "u64",
        },
        {
            "name": "set_count",
            "discriminator": [8, 7, 6, 5, 4, 3, 2, 1],
            "accounts": [
                {"name": "counter", "writable": True},
                {"name": "authority", "signer": True},
            ],
            "args": [{"name": "params", "type": {"defined": {"name": "CountParams"}}}],
        },
    ],
    "types": [
        {
            "name": "CountParams",
            "type": {"kind": "struct", "fields": [{"name": "newCount", "type": "u64"}]},
        }
    ],
}


def test_bundled_versions():
    assert default_registry().versions() == ["v1", "v2"]
    assert "v2" in default_registry()


def test_unknown_version():
    with pytest.raises(SchemaMismatch):
        get_schema("v9")


def test_register_never_overwrites():
    registry = SchemaRegistry()
    registry.register_idl(NEW_FORMAT_IDL, "counter-v1")
    with pytest.raises(ValueError):
        registry.register_idl(NEW_FORMAT_IDL, "counter-v1")
    assert registry.find("counter-v2") is None


def test_instruction_discriminator_follows_anchor(schema):
    expected = hashlib.sha256(b"global:calculate_tokens_received").digest()[:8]
    ix = schema.get_instruction("calculateTokensReceived")
    assert ix.name == "calculate_tokens_received"
    assert ix.discriminator == expected
    assert schema.instruction_for_data(expected + b"\x00" * 16) is ix


def test_account_discriminator_follows_anchor(schema):
    app = schema.get_account("App")
    assert app.discriminator == hashlib.sha256(b"account:App").digest()[:8]
    assert schema.get_account("user").discriminator == hashlib.sha256(b"account:User").digest()[:8]


def test_view_instructions(schema):
    assert {ix.name for ix in schema.view_instructions()} == VIEWS
    assert not schema.get_instruction("buy").is_view
    assert not schema.get_instruction("initialize").is_view


def test_optional_role(schema):
    roles = {r.name: r for r in schema.get_instruction("buy").accounts}
    assert roles["referred_by_data"].is_optional
    assert roles["user"].is_signer and roles["user"].is_writable
    assert not roles["user_data"].is_optional


def test_defined_types_and_errors(schema):
    params = schema.get_type("InitTokenParams")
    assert [f.name for f in params.fields] == ["name", "symbol", "uri", "decimals"]
    assert schema.error_for_code(6006).name == "InsufficientBalance"
    assert schema.error_for_code(1) is None


def test_legacy_schema_has_only_initialize():
    legacy = get_schema("v1")
    assert [ix.name for ix in legacy.instructions] == ["initialize"]
    assert legacy.get_instruction("initialize").arguments == ()
    fields = {f.name: f.field_type for f in legacy.get_account("App").fields}
    assert fields["token_supply"] == "u64"
    assert "only_ambassadors" in fields


def test_new_format_idl():
    schema = IDLParser().parse(NEW_FORMAT_IDL, "counter")
    get_count = schema.get_instruction("get_count")
    assert get_count.discriminator == bytes([1, 2, 3, 4, 5, 6, 7, 8])
    assert get_count.is_view
    set_count = schema.get_instruction("set_count")
    assert set_count.accounts[0].is_writable
    assert set_count.accounts[1].is_signer
    assert set_count.arguments[0].field_type == {"defined": "CountParams"}
    assert schema.address == NEW_FORMAT_IDL["address"]


def test_nested_account_groups_rejected():
    idl = {"instructions": [{"name": "x", "accounts": [{"name": "group", "accounts": []}], "args": []}]}
    with pytest.raises(ValueError):
        IDLParser().parse(idl, "bad")


def test_discriminator_collision():
    a = InstructionSpec(name="a", discriminator=b"\x00" * 8)
    b = InstructionSpec(name="b", discriminator=b"\x00" * 8)
    with pytest.raises(ValueError):
        ProgramSchema(version="x", name="x", instructions=(a, b))


def test_case_helpers():
    assert to_snake_case("calculateLamportsReceived") == "calculate_lamports_received"
    assert to_snake_case("buy") == "buy"
    assert to_pascal_case("user") == "User"
    assert to_pascal_case("init_token_params") == "InitTokenParams"

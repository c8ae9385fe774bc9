"""Shared fixtures: bundled schemas, a builder and an in-process RPC stand-in."""

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey

from curvesdk.constants import DEFAULT_PROGRAM_ID
from curvesdk.core.tx_builder import InstructionBuilder
from curvesdk.schema import get_schema

BLOCKHASH = str(Hash.default())


class FakeRpc:
    """Answers the RPC calls the SDK makes from canned data."""

    commitment = "confirmed"

    def __init__(self, simulation=None, accounts=None):
        self.simulation = simulation or {"context": {"slot": 1}, "value": {"err": None, "logs": []}}
        self.accounts = accounts or {}
        self.simulated = []
        self.blockhash_requests = 0

    async def get_latest_blockhash(self, commitment=None):
        self.blockhash_requests += 1
        return {"blockhash": BLOCKHASH, "lastValidBlockHeight": 100}

    async def simulate_transaction(self, tx, options=None):
        self.simulated.append((tx, options))
        return self.simulation

    async def get_account_info(self, pubkey):
        return self.accounts.get(pubkey)


@pytest.fixture
def program_id():
    return DEFAULT_PROGRAM_ID


@pytest.fixture
def schema():
    return get_schema("v2")


@pytest.fixture
def builder(schema, program_id):
    return InstructionBuilder(schema, program_id)


@pytest.fixture
def user():
    return Pubkey.new_unique()


@pytest.fixture
def fake_rpc():
    return FakeRpc()

"""Shared fixtures: engine, accounts, prepared condition, collateral harnesses."""

import tempfile
from pathlib import Path

import pytest

from ctfledger.engine.core import ConditionalTokens, encode_split_data
from ctfledger.ids.derive import ROOT_COLLECTION_ID, get_condition_id, get_position_id
from ctfledger.storage.db import get_connection, init_schema
from ctfledger.storage.event_log import EventRecorder
from ctfledger.tokens.fungible import FungibleToken
from ctfledger.tokens.multi import MultiToken

ENGINE = "0x" + "c7" * 20
ORACLE = "0x" + "a1" * 20
NOT_ORACLE = "0x" + "a2" * 20
TRADER = "0x" + "11" * 20
COUNTERPARTY = "0x" + "22" * 20

QUESTION_ID = "0x" + "5e" * 32
PAYOUT_DENOMINATOR = 10
OUTCOME_SLOT_COUNT = 2

COLLATERAL_TOKEN_COUNT = 10**19
SPLIT_AMOUNT = 4 * 10**18
MERGE_AMOUNT = 3 * 10**18
TRANSFER_AMOUNT = 10**18


@pytest.fixture
def ctf():
    return ConditionalTokens(ENGINE)


@pytest.fixture
def events(ctf):
    captured = []
    ctf.subscribe(captured.append)
    return captured


@pytest.fixture
def condition_id():
    return get_condition_id(ORACLE, QUESTION_ID, PAYOUT_DENOMINATOR, OUTCOME_SLOT_COUNT)


@pytest.fixture
def prepared(ctf, condition_id):
    ctf.prepare_condition(ORACLE, QUESTION_ID, PAYOUT_DENOMINATOR, OUTCOME_SLOT_COUNT)
    return condition_id


class Erc20Harness:
    """Fungible collateral approved to the engine."""

    name = "erc20"

    def __init__(self, ctf, trader=TRADER):
        self.ctf = ctf
        self.trader = trader
        self.token = FungibleToken("0x" + "e2" * 20, name="MockCoin", symbol="MCK")
        self.token.mint(trader, COLLATERAL_TOKEN_COUNT)
        self.token.approve(trader, ctf.address, COLLATERAL_TOKEN_COUNT)

    def split(self, condition_id, partition, amount, parent=ROOT_COLLECTION_ID):
        self.ctf.split_position(self.trader, self.token, parent, condition_id, partition, amount)

    def merge(self, condition_id, partition, amount, parent=ROOT_COLLECTION_ID):
        self.ctf.merge_positions(self.trader, self.token, parent, condition_id, partition, amount)

    def redeem(self, condition_id, index_sets, parent=ROOT_COLLECTION_ID, redeemer=None):
        return self.ctf.redeem_positions(redeemer or self.trader, self.token, parent, condition_id, index_sets)

    def collateral_balance(self, owner):
        return self.token.balance_of(owner)

    def position_id(self, collection_id):
        return get_position_id(self.token.address, collection_id)

    def collateral_fields(self):
        return {"collateral_token": self.token.address, "collateral_token_id": None}


class Erc1155Harness:
    """Multi-token collateral with the engine approved as operator."""

    name = "erc1155"
    token_id = 0x7A3F00000000000000000000000000000000000000000000000000000000BEEF

    def __init__(self, ctf, trader=TRADER):
        self.ctf = ctf
        self.trader = trader
        self.token = MultiToken("0x" + "e3" * 20, name="ERC1155Mock")
        self.token.mint(trader, self.token_id, COLLATERAL_TOKEN_COUNT)
        self.setup_access()

    def setup_access(self):
        self.token.set_approval_for_all(self.trader, self.ctf.address, True)

    def split(self, condition_id, partition, amount, parent=ROOT_COLLECTION_ID):
        self.ctf.split_1155_position(
            self.trader, self.token, self.token_id, parent, condition_id, partition, amount
        )

    def merge(self, condition_id, partition, amount, parent=ROOT_COLLECTION_ID):
        self.ctf.merge_1155_positions(
            self.trader, self.token, self.token_id, parent, condition_id, partition, amount
        )

    def redeem(self, condition_id, index_sets, parent=ROOT_COLLECTION_ID, redeemer=None):
        return self.ctf.redeem_1155_positions(
            redeemer or self.trader, self.token, self.token_id, parent, condition_id, index_sets
        )

    def collateral_balance(self, owner):
        return self.token.balance_of(owner, self.token_id)

    def position_id(self, collection_id):
        return get_position_id(self.token.address, collection_id, self.token_id)

    def collateral_fields(self):
        return {"collateral_token": self.token.address, "collateral_token_id": self.token_id}


class DirectTransferHarness(Erc1155Harness):
    """Multi-token collateral sent straight to the engine with split parameters as payload."""

    name = "direct"

    def setup_access(self):
        self.ctf.enable_direct_deposits(self.token)

    def split(self, condition_id, partition, amount, parent=ROOT_COLLECTION_ID):
        assert parent == ROOT_COLLECTION_ID
        self.token.safe_transfer_from(
            self.trader,
            self.trader,
            self.ctf.address,
            self.token_id,
            amount,
            encode_split_data(condition_id, partition),
        )


HARNESSES = {h.name: h for h in (Erc20Harness, Erc1155Harness, DirectTransferHarness)}


@pytest.fixture(params=sorted(HARNESSES))
def harness(request, ctf):
    return HARNESSES[request.param](ctf)


@pytest.fixture
def erc20(ctf):
    return Erc20Harness(ctf)


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn, path
    conn.close()
    path.unlink(missing_ok=True)
    for leftover in Path(tmp).iterdir():
        leftover.unlink()
    Path(tmp).rmdir()


@pytest.fixture
def ledger_db(tmp_path):
    """Closed DuckDB file holding one resolved condition's recorded lifecycle."""
    path = tmp_path / "ledger.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    ctf = ConditionalTokens(ENGINE)
    collateral = Erc20Harness(ctf)
    with EventRecorder(conn) as recorder:
        recorder.attach(ctf)
        condition_id = ctf.prepare_condition(ORACLE, QUESTION_ID, PAYOUT_DENOMINATOR, OUTCOME_SLOT_COUNT)
        collateral.split(condition_id, [0b01, 0b10], SPLIT_AMOUNT)
        ctf.report_payouts(ORACLE, QUESTION_ID, PAYOUT_DENOMINATOR, [3, 7])
        collateral.redeem(condition_id, [0b01])
    conn.close()
    return path, condition_id, collateral

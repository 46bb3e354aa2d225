import gc

import pytest

from chainbind.abi import encode, parse_type
from chainbind.abi.schema import AbiSchema
from chainbind.contracts.binding import ContractBinding
from chainbind.contracts.events import EventFilter, decode_event_log
from chainbind.errors import DecodingError, RpcError
from chainbind.tx.handle import DeploymentHandle
from chainbind.utils.bytes import to_hex
from tests.harness import ALICE, BOB, CONTRACT, OTHER, TX_HASH, NodeLikeChain

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def _topic_addr(addr: str) -> str:
    return "0x" + "00" * 12 + addr[2:]


def _transfer_log(src=ALICE, dst=BOB, value=5, block="0x10"):
    return {
        "address": CONTRACT,
        "topics": [TRANSFER_TOPIC, _topic_addr(src), _topic_addr(dst)],
        "data": to_hex(encode([parse_type("uint256")], [value])),
        "blockNumber": block,
        "transactionHash": TX_HASH,
        "blockHash": "0x" + "bb" * 32,
        "transactionIndex": "0x0",
        "logIndex": "0x3",
    }


@pytest.fixture
def token(chain, token_abi):
    return ContractBinding(client=chain, abi=token_abi, code="0x00", address=CONTRACT, sender=ALICE)


def test_create_filter_defaults(token, chain):
    flt = token.create_filter("Transfer")
    assert isinstance(flt, EventFilter)
    sent = chain.last("new_filter")
    assert sent == {"address": CONTRACT, "topics": [TRANSFER_TOPIC], "from_block": "0x0", "to_block": "latest"}
    assert flt.filter_id == "0x1"


def test_get_filter_logs_decodes_indexed_params(token, chain):
    flt = token.create_filter("transfer")
    chain.logs = [_transfer_log()]
    [rec] = token.get_filter_logs(flt)
    assert rec.event == "Transfer"
    assert rec.topics == (ALICE, BOB)
    assert rec.block_number == 16
    assert rec.transaction_index == 0
    assert rec.log_index == 3
    assert rec.args == {"from": ALICE, "to": BOB}
    # the non-indexed value is flagged, not silently dropped
    assert rec.unsupported == ("value",)
    assert rec.to_dict() == {
        "blockNumber": 16,
        "transactionHash": TX_HASH,
        "blockHash": "0x" + "bb" * 32,
        "transactionIndex": 0,
        "topics": [ALICE, BOB],
        "unsupported": ["value"],
    }


def test_decode_data_opt_in(token, chain):
    flt = token.create_filter("transfer", decode_data=True)
    chain.logs = [_transfer_log(value=77)]
    [rec] = flt.get_logs()
    assert rec.data == {"value": 77}
    assert rec.args["value"] == 77
    assert rec.unsupported == ()


def test_get_changes_uses_filter_changes(token, chain):
    flt = token.create_filter("transfer")
    chain.changes = [_transfer_log(value=1), _transfer_log(value=2)]
    assert len(token.get_filter_changes(flt)) == 2
    assert token.get_filter_changes(flt) == []
    assert chain.last("get_filter_changes") == {"filter_id": flt.filter_id}


def test_foreign_logs_are_skipped(token, chain):
    flt = token.create_filter("transfer")
    other = _transfer_log()
    other["topics"] = ["0x" + "11" * 32] + other["topics"][1:]
    chain.logs = [other, _transfer_log()]
    assert len(flt.get_logs()) == 1


def test_decode_log_rejects_mismatch_and_missing_topics(token):
    d = token.event("transfer")
    bad = _transfer_log()
    bad["topics"] = ["0x" + "11" * 32]
    with pytest.raises(DecodingError):
        decode_event_log(d, bad)
    short = _transfer_log()
    short["topics"] = short["topics"][:2]
    with pytest.raises(DecodingError):
        decode_event_log(d, short)
    with pytest.raises(DecodingError):
        decode_event_log(d, {"data": "0x"})


def test_indexed_dynamic_params_come_back_as_raw_topic():
    abi = [
        {
            "type": "event",
            "name": "Named",
            "inputs": [
                {"name": "label", "type": "string", "indexed": True},
                {"name": "id", "type": "int64", "indexed": True},
            ],
        }
    ]
    d = AbiSchema.parse(abi).event("Named")
    hashed = "0x" + "ee" * 32
    raw = {"topics": [to_hex(d.topic), hashed, "0x" + "ff" * 32], "data": "0x"}
    rec = decode_event_log(d, raw)
    assert rec.topics == (bytes.fromhex("ee" * 32), -1)
    assert rec.block_number is None


def test_anonymous_event_has_no_topic0(chain):
    abi = [{"type": "event", "name": "Anon", "anonymous": True, "inputs": [{"name": "x", "type": "uint8", "indexed": True}]}]
    c = ContractBinding(client=chain, abi=abi, address=CONTRACT)
    flt = c.create_filter("anon")
    assert chain.last("new_filter")["topics"] == []
    chain.logs = [{"topics": ["0x" + "00" * 31 + "09"], "data": "0x"}]
    [rec] = flt.get_logs()
    assert rec.topics == (9,)


def test_filters_follow_binding_address_after_deployment(chain, token_abi, sleeps):
    """
    A filter created before deployment is re-registered against the deployed
    address, and filters created afterwards use it directly.
    """
    c = ContractBinding(client=chain, abi=token_abi, code="0x00", sender=ALICE)
    early = c.create_filter("transfer", from_block="0x5")
    assert chain.last("new_filter")["address"] is None
    first_id = early.filter_id

    chain.receipts[TX_HASH] = {"transactionHash": TX_HASH, "blockNumber": "0x6", "contractAddress": OTHER}
    handle = c.deploy("Token", 1)
    assert isinstance(handle, DeploymentHandle)
    handle.wait_for_deployment()

    # re-registered as soon as the address resolves, old node filter removed
    assert early.address == OTHER
    assert not early.stale
    assert early.filter_id != first_id
    assert early.installed_address == OTHER
    assert chain.last("new_filter") == {"address": OTHER, "topics": [TRANSFER_TOPIC], "from_block": "0x5", "to_block": "latest"}
    assert chain.last("uninstall_filter") == {"filter_id": first_id}

    chain.logs = [_transfer_log()]
    early.get_logs()
    assert chain.last("get_filter_logs") == {"filter_id": early.filter_id}

    late = c.create_filter("transfer")
    assert late.installed_address == OTHER


def test_filter_created_before_deployment_sees_later_changes(token_abi, sleeps):
    chain = NodeLikeChain()
    c = ContractBinding(client=chain, abi=token_abi, code="0x00", sender=ALICE)
    early = c.create_filter("transfer")
    assert early.get_changes() == []

    chain.receipts[TX_HASH] = {"transactionHash": TX_HASH, "blockNumber": "0x6", "contractAddress": OTHER}
    c.deploy("Token", 1).wait_for_deployment()

    emitted = _transfer_log(value=3)
    emitted["address"] = OTHER
    chain.emit(emitted)

    [rec] = early.get_changes()
    assert rec.args == {"from": ALICE, "to": BOB}
    assert early.get_changes() == []


def test_failed_reinstall_is_retried_on_next_fetch(token, chain):
    flt = token.create_filter("transfer")
    first_id = flt.filter_id
    original = chain.new_filter

    def refuse(**kwargs):
        raise RpcError("eth_newFilter", -32000, "filter limit reached")

    chain.new_filter = refuse
    token.address = OTHER
    assert flt.stale
    assert flt.filter_id == first_id

    chain.new_filter = original
    flt.get_changes()
    assert flt.installed_address == OTHER
    assert chain.last("get_filter_changes") == {"filter_id": flt.filter_id}


def test_pinned_address_does_not_follow_binding(token, chain):
    flt = token.create_filter("transfer", address=OTHER)
    token.address = "0x" + "99" * 20
    assert flt.address == OTHER
    assert not flt.stale


def test_binding_holds_filters_weakly(token):
    flt = token.create_filter("transfer")
    assert len(token._filters) == 1
    del flt
    gc.collect()
    assert len(token._filters) == 0
    token.address = OTHER


def test_uninstall(token, chain):
    flt = token.create_filter("transfer")
    fid = flt.filter_id
    assert flt.uninstall() is True
    assert chain.last("uninstall_filter") == {"filter_id": fid}
    assert flt.filter_id is None
    assert flt.uninstall() is False

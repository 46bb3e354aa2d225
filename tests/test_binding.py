import json

import pytest

from chainbind.abi import encode, parse_type
from chainbind.contracts.binding import ContractBinding, RawCallResult
from chainbind.errors import (ArityError, DeploymentError, SchemaError,
                              TransactionError)
from chainbind.tx.handle import DeploymentHandle, TransactionHandle, TxState
from chainbind.utils.bytes import to_hex
from tests.harness import ALICE, BOB, CONTRACT, OTHER, TX_HASH, ZERO_HASH

CODE = "0x6080604052"


def _hex_words(*types_and_values):
    types = [parse_type(t) for t, _ in types_and_values]
    return to_hex(encode(types, [v for _, v in types_and_values]))


@pytest.fixture
def token(chain, token_abi):
    return ContractBinding(client=chain, abi=token_abi, code=CODE, address=CONTRACT, sender=ALICE, name="Token")


def test_call_with_single_output_returns_bare_value(chain):
    abi = [{"type": "function", "name": "get", "inputs": [], "outputs": [{"type": "uint256"}], "stateMutability": "view"}]
    c = ContractBinding(client=chain, abi=abi, address=CONTRACT)
    chain.call_result = _hex_words(("uint256", 42))

    assert c.call("get") == 42
    sent = chain.last("call")
    assert sent["to"] == CONTRACT
    assert sent["data"] == "0x6d4ce63c"


def test_call_with_many_outputs_returns_list(token, chain):
    chain.call_result = _hex_words(("string", "Token"), ("uint8", 18))
    assert token.call("info") == ["Token", 18]


def test_call_encodes_selector_and_args(token, chain):
    chain.call_result = _hex_words(("uint256", 7))
    assert token.call("balance_of", BOB) == 7
    data = chain.last("call")["data"]
    assert data.startswith("0x70a08231")
    assert data.endswith(BOB[2:])
    assert chain.last("call")["sender"] == ALICE


def test_call_raw_returns_data_raw_and_formatted(token, chain):
    chain.call_result = _hex_words(("uint256", 1000))
    res = token.call_raw("totalSupply")
    assert isinstance(res, RawCallResult)
    assert res.data == "0x18160ddd"
    assert res.raw == chain.call_result
    assert res.formatted == [1000]


def test_call_arity_mismatch(token):
    with pytest.raises(ArityError) as ei:
        token.call("balance_of")
    assert ei.value.expected == 1 and ei.value.got == 0


def test_call_without_address_is_rejected(chain, token_abi):
    c = ContractBinding(client=chain, abi=token_abi, code=CODE)
    with pytest.raises(ValueError):
        c.call("totalSupply")
    assert chain.calls == []


def test_unknown_or_ambiguous_function_is_schema_error(token):
    with pytest.raises(SchemaError):
        token.call("mint", 1)
    with pytest.raises(SchemaError):
        token.transact("transfer", BOB, 1)


def test_overloads_dispatch_to_distinct_selectors(token, chain):
    token.transact("transfer__address__uint256", BOB, 1)
    short = chain.last("send_transaction")["data"]
    token.transact("transfer__address__uint256__bytes", BOB, 1, b"memo")
    long = chain.last("send_transaction")["data"]
    assert short[:10] == "0xa9059cbb"
    assert long[:10] != short[:10]


def test_transact_returns_pending_handle_without_polling(token, chain):
    handle = token.transact("transfer(address,uint256)", BOB, 5)
    assert isinstance(handle, TransactionHandle)
    assert handle.tx_hash == TX_HASH
    assert handle.state is TxState.PENDING
    assert "get_transaction_receipt" not in chain.methods()
    sent = chain.last("send_transaction")
    assert sent["to"] == CONTRACT and sent["sender"] == ALICE


def test_transact_sentinel_hash_is_transaction_error(token, chain):
    chain.tx_hash = ZERO_HASH
    with pytest.raises(TransactionError):
        token.transact("transfer__address__uint256", BOB, 5)


def test_transact_and_wait(token, chain, sleeps):
    chain.pending_polls = 2
    chain.receipts[TX_HASH] = {"transactionHash": TX_HASH, "blockNumber": "0x10", "status": "0x1"}
    handle = token.transact_and_wait("transfer__address__uint256", BOB, 5)
    assert handle.state is TxState.MINED
    assert handle.block_number == 16
    assert len(sleeps) == 2


def test_estimate_gas_encodes_constructor(token, chain):
    assert token.estimate_gas("Token", 1000) == 21000
    sent = chain.last("estimate_gas")
    assert sent["data"].startswith(CODE)
    assert sent["sender"] == ALICE
    assert len(sent["data"]) == len(CODE) + 2 * 32 * 4


def test_estimate_gas_arity(token):
    with pytest.raises(ArityError):
        token.estimate_gas("Token")


def test_estimate_gas_without_constructor_rejects_args(chain):
    abi = [{"type": "function", "name": "get", "inputs": [], "outputs": [{"type": "uint256"}]}]
    c = ContractBinding(client=chain, abi=abi, code=CODE)
    assert c.estimate_gas() == 21000
    assert chain.last("estimate_gas")["data"] == CODE
    with pytest.raises(ArityError):
        c.estimate_gas(1)


def test_deploy_returns_pending_deployment_handle(chain, token_abi):
    c = ContractBinding(client=chain, abi=token_abi, code=CODE, sender=ALICE)
    handle = c.deploy("Token", 1000)
    assert isinstance(handle, DeploymentHandle)
    assert handle.state is TxState.PENDING
    assert c.deployment is handle
    assert chain.last("send_transaction")["to"] is None
    assert c.address is None


@pytest.mark.parametrize("sentinel", [ZERO_HASH, None, "", "0x0"])
def test_deploy_sentinel_raises_deployment_error(chain, token_abi, sentinel):
    c = ContractBinding(client=chain, abi=token_abi, code=CODE, sender=ALICE)
    chain.tx_hash = sentinel
    with pytest.raises(DeploymentError):
        c.deploy("Token", 1000)
    assert c.deployment is None


def test_deploy_arity(chain, token_abi):
    c = ContractBinding(client=chain, abi=token_abi, code=CODE)
    with pytest.raises(ArityError):
        c.deploy()
    assert "send_transaction" not in chain.methods()


def test_deploy_and_wait_sets_address(chain, token_abi, sleeps):
    c = ContractBinding(client=chain, abi=token_abi, code=CODE, sender=ALICE)
    chain.pending_polls = 1
    chain.receipts[TX_HASH] = {"transactionHash": TX_HASH, "blockNumber": "0x2", "contractAddress": OTHER, "status": "0x1"}
    assert c.deploy_and_wait("Token", 1) == OTHER
    assert c.address == OTHER


def test_create_from_artifact(chain, token_abi):
    artifact = {"contractName": "Token", "abi": token_abi, "bytecode": CODE}
    c = ContractBinding.create(artifact, client=chain)
    assert c.code == bytes.fromhex(CODE[2:])
    assert c.name == "Token"

    c2 = ContractBinding.create(json.dumps(token_abi), "0x00", client=chain, address=CONTRACT)
    assert c2.address == CONTRACT
    assert c2.code == b"\x00"


def test_address_setter_validates(token):
    with pytest.raises(ValueError):
        token.address = "0x1234"
    token.address = OTHER
    assert token.address == OTHER


def test_dispatch_tables_are_read_only(token):
    assert "balance_of" in token.functions
    assert "transfer" in token.events
    with pytest.raises(TypeError):
        token.functions["x"] = None  # type: ignore[index]

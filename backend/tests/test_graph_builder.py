import pytest

from muleflow.graph_builder import (
    AccountNode,
    TransactionGraph,
    TransferRecord,
    UnknownAccountError,
)
from muleflow.graph_store import UnknownHandleError
from muleflow.models import TransferType

from conftest import make_tx


def test_basic_graph_construction():
    graph = TransactionGraph.from_transactions([
        make_tx("A", "B", 100.0),
        make_tx("B", "C", 200.0),
        make_tx("A", "C", 300.0),
    ])
    assert graph.transaction_count == 3
    assert graph.account_count == 3
    assert graph.store.edge_count() == 3


def test_first_seen_interning():
    graph = TransactionGraph()
    assert graph.add_transaction(make_tx("A", "B", 1.0)) == (0, 1)
    assert graph.add_transaction(make_tx("C", "A", 1.0)) == (2, 0)
    assert graph.handle_of("A") == 0
    assert graph.account_id(2) == "C"
    assert graph.account(1) == AccountNode(1, "B")
    assert [a.account_id for a in graph.accounts()] == ["A", "B", "C"]
    assert "A" in graph
    assert "Z" not in graph


def test_unknown_account_and_unknown_handle_share_an_error_type():
    graph = TransactionGraph.from_transactions([make_tx("A", "B", 1.0)])
    with pytest.raises(UnknownAccountError, match="NOPE"):
        graph.handle_of("NOPE")
    with pytest.raises(UnknownHandleError):
        graph.transfers("A", "NOPE")
    with pytest.raises(UnknownHandleError):
        graph.transfers("NOPE", 1)
    with pytest.raises(UnknownHandleError):
        graph.edge_keys("NOPE")
    with pytest.raises(UnknownHandleError):
        graph.edge_keys(7)
    with pytest.raises(UnknownHandleError):
        graph.account_id(7)
    assert not issubclass(UnknownAccountError, KeyError)


def test_duplicate_transactions_are_all_kept():
    tx = make_tx("A", "B", 250.0, step=3)
    graph = TransactionGraph.from_transactions([tx, tx])

    bucket = graph.transfers("A", "B")
    assert len(bucket) == 2
    assert bucket[0] == TransferRecord(250.0, 3, TransferType.TRANSFER, False)
    assert graph.store.edge_count() == 1
    assert graph.transaction_count == 2


def test_bucket_preserves_ingestion_order():
    graph = TransactionGraph.from_transactions([
        make_tx("A", "B", 1.0, step=5),
        make_tx("A", "B", 2.0, step=1),
        make_tx("A", "B", 3.0, step=9, transfer_type=TransferType.CASH_OUT, fraud=True),
    ])
    records = graph.transfers(0, 1)
    assert [r.amount for r in records] == [1.0, 2.0, 3.0]
    assert [r.step for r in records] == [5, 1, 9]
    assert records[-1].is_fraud_label is True
    assert graph.labelled_fraud_count == 1


def test_edge_keys_cover_both_directions(scenario_graph):
    b = scenario_graph.handle_of("MULE_B")
    keys = scenario_graph.edge_keys("MULE_B")

    outgoing = {(b, scenario_graph.handle_of(d)) for d in ("DST_1", "DST_2")}
    incoming = {(scenario_graph.handle_of(s), b) for s in ("SRC_1", "SRC_2", "SRC_3")}
    assert set(keys) == outgoing | incoming
    assert set(keys[:2]) == outgoing
    assert scenario_graph.edge_keys(b) == keys


def test_every_edge_endpoint_is_a_known_node(scenario_graph):
    store = scenario_graph.store
    for source, target, bucket in store.edges():
        assert store.has_node(source)
        assert store.has_node(target)
        assert bucket

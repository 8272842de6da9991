import random
import time

import pytest

from muleflow.graph_builder import TransactionGraph
from muleflow.graph_store import UnknownHandleError
from muleflow.metrics import (
    METRIC_COLUMNS,
    compute_account_metrics,
    metrics_frame,
    metrics_totals,
    retention_rate,
)

from conftest import make_tx, scenario_transactions


def _random_transactions(n, n_accounts, seed=7):
    rng = random.Random(seed)
    return [
        make_tx(
            f"C{rng.randrange(n_accounts)}",
            f"C{rng.randrange(n_accounts)}",
            round(rng.uniform(0, 1_000_000), 2),
            step=rng.randrange(744),
        )
        for _ in range(n)
    ]


def _by_id(metrics):
    return {m.account_id: m for m in metrics.values()}


def test_counts_sum_to_transactions_ingested():
    txs = _random_transactions(2_000, 300)
    metrics = compute_account_metrics(TransactionGraph.from_transactions(txs))
    totals = metrics_totals(metrics)

    assert totals["in_count"] == totals["out_count"] == len(txs)
    assert totals["in_count"] + totals["out_count"] == 2 * len(txs)
    assert totals["in_volume"] == pytest.approx(totals["out_volume"])
    assert totals["in_volume"] == pytest.approx(sum(tx.amount for tx in txs))


def test_zero_inflow_means_zero_retention():
    txs = _random_transactions(500, 200)
    for m in compute_account_metrics(TransactionGraph.from_transactions(txs)).values():
        if m.in_volume == 0:
            assert m.retention_rate == 0.0


def test_retention_rate_guard():
    assert retention_rate(0.0, 500.0) == 0.0
    assert retention_rate(100.0, 0.0) == 1.0
    assert retention_rate(100.0, 150.0) == pytest.approx(-0.5)


def test_duplicate_transactions_double_every_contribution():
    once = _by_id(compute_account_metrics(
        TransactionGraph.from_transactions([make_tx("A", "B", 1_234.5)])
    ))
    twice = _by_id(compute_account_metrics(
        TransactionGraph.from_transactions([make_tx("A", "B", 1_234.5)] * 2)
    ))

    assert twice["A"].out_count == 2 * once["A"].out_count == 2
    assert twice["B"].in_count == 2 * once["B"].in_count == 2
    assert twice["A"].out_volume == pytest.approx(2 * once["A"].out_volume)
    assert twice["B"].in_volume == pytest.approx(2 * once["B"].in_volume)


def test_collector_metrics(scenario_graph):
    a = _by_id(compute_account_metrics(scenario_graph))["COLLECTOR_A"]
    assert a.in_count == 5
    assert a.out_count == 0
    assert a.in_volume == pytest.approx(1_000_000.0)
    assert a.retention_rate == pytest.approx(1.0)


def test_mule_metrics(scenario_graph):
    b = _by_id(compute_account_metrics(scenario_graph))["MULE_B"]
    assert (b.in_count, b.out_count) == (3, 2)
    assert b.in_volume == pytest.approx(500_000.0)
    assert b.out_volume == pytest.approx(495_000.0)
    assert b.retention_rate == pytest.approx(0.01)
    assert b.imbalance == pytest.approx(0.01)
    assert b.total_volume == pytest.approx(995_000.0)


def test_negative_retention_is_not_clamped(scenario_graph):
    c = _by_id(compute_account_metrics(scenario_graph))["PASS_C"]
    assert c.retention_rate == pytest.approx(-283.5, abs=0.1)
    assert c.retention_rate < -1


def test_recompute_is_identical(scenario_graph):
    first = compute_account_metrics(scenario_graph)
    second = compute_account_metrics(scenario_graph)
    assert first == second
    assert [m.model_dump_json() for m in first.values()] == [m.model_dump_json() for m in second.values()]


def test_ingestion_order_does_not_change_metrics():
    txs = scenario_transactions()
    forward = _by_id(compute_account_metrics(TransactionGraph.from_transactions(txs)))
    backward = _by_id(compute_account_metrics(TransactionGraph.from_transactions(txs[::-1])))

    assert forward.keys() == backward.keys()
    for account_id, m in forward.items():
        other = backward[account_id]
        assert (m.in_count, m.out_count) == (other.in_count, other.out_count)
        assert m.in_volume == pytest.approx(other.in_volume)
        assert m.out_volume == pytest.approx(other.out_volume)


def test_disjoint_partitions_match_full_run():
    graph = TransactionGraph.from_transactions(_random_transactions(1_000, 150))
    full = compute_account_metrics(graph)

    handles = list(range(graph.account_count))
    merged = {}
    for part in (handles[0::3], handles[1::3], handles[2::3]):
        merged.update(compute_account_metrics(graph, part))
    assert merged == full


def test_unknown_handle_in_partition_raises(scenario_graph):
    with pytest.raises(UnknownHandleError):
        compute_account_metrics(scenario_graph, [scenario_graph.account_count])


def test_metrics_hold_no_graph_reference(scenario_graph):
    metrics = compute_account_metrics(scenario_graph)
    before = metrics[scenario_graph.handle_of("COLLECTOR_A")]
    scenario_graph.add_transaction(make_tx("COLLECTOR_A", "X", 5.0))
    assert before.out_count == 0
    assert compute_account_metrics(scenario_graph)[before.handle].out_count == 1


def test_metrics_frame(scenario_graph):
    metrics = compute_account_metrics(scenario_graph)
    frame = metrics_frame(metrics.values())
    assert list(frame.columns) == METRIC_COLUMNS
    assert len(frame) == scenario_graph.account_count
    assert frame["in_count"].sum() == scenario_graph.transaction_count


def _best_time(graph, repeats=3):
    best = float("inf")
    for _ in range(repeats):
        start = time.perf_counter()
        compute_account_metrics(graph)
        best = min(best, time.perf_counter() - start)
    return best


def test_metrics_time_grows_linearly():
    # 1×, 10× and 100× the base input, accounts scaled in proportion.
    sizes = [(1_000, 400), (10_000, 4_000), (100_000, 40_000)]
    times = [
        _best_time(TransactionGraph.from_transactions(_random_transactions(n, accounts, seed=i)))
        for i, (n, accounts) in enumerate(sizes)
    ]

    # Each 10× step: linear ≈ 10×, quadratic ≈ 100×.
    for smaller, larger in zip(times, times[1:]):
        assert larger / smaller < 35
    assert times[2] / times[0] < 35 * 35

from __future__ import annotations

import pytest

from muleflow.graph_builder import TransactionGraph
from muleflow.models import Transaction, TransferType


def make_tx(origin, dest, amount, step=1, transfer_type=TransferType.TRANSFER, fraud=False):
    return Transaction(
        step=step,
        transfer_type=transfer_type,
        amount=amount,
        origin_account=origin,
        dest_account=dest,
        is_fraud_label=fraud,
    )


def scenario_transactions():
    """
    COLLECTOR_A  receives 5 × 200,000 from five senders, sends nothing.
    MULE_B       receives 3 transfers (500,000) and forwards 2 (495,000).
    PASS_C       receives 15,345.96 and sends 4,366,622.92.
    """
    txs = [make_tx(f"SENDER_{i}", "COLLECTOR_A", 200_000.0, step=i) for i in range(5)]
    txs += [
        make_tx("SRC_1", "MULE_B", 200_000.0, step=10),
        make_tx("SRC_2", "MULE_B", 150_000.0, step=11),
        make_tx("SRC_3", "MULE_B", 150_000.0, step=12),
        make_tx("MULE_B", "DST_1", 300_000.0, step=13, transfer_type=TransferType.CASH_OUT),
        make_tx("MULE_B", "DST_2", 195_000.0, step=14, transfer_type=TransferType.CASH_OUT),
    ]
    txs += [
        make_tx("SRC_4", "PASS_C", 15_345.96, step=20),
        make_tx("PASS_C", "DST_3", 4_366_622.92, step=21, fraud=True),
    ]
    return txs


SCENARIO_CSV = "\n".join(
    ["step,type,amount,nameOrig,nameDest,isFraud"]
    + [
        f"{tx.step},{tx.transfer_type.value},{tx.amount},{tx.origin_account},{tx.dest_account},{int(tx.is_fraud_label)}"
        for tx in scenario_transactions()
    ]
    + [
        "30,PAYMENT,9.99,SHOPPER,MERCHANT,0",
        "31,DEBIT,50.00,SHOPPER,BANK,0",
    ]
) + "\n"


@pytest.fixture
def scenario_graph():
    return TransactionGraph.from_transactions(scenario_transactions())


@pytest.fixture
def scenario_csv_bytes():
    return SCENARIO_CSV.encode("utf-8")

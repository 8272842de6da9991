"""
graph_builder.py – Build the account-level money-flow graph from transactions.

Nodes
-----
One per distinct account id, seen as origin or destination.  Ids are interned
on first sight: the first transaction that mentions an account allocates its
handle and every later mention reuses it.

Edges
-----
One bucket per ordered (origin, destination) pair.  Each accepted transaction
appends a ``TransferRecord`` to its pair's bucket, so repeated transfers
between the same two accounts are all kept and counted individually.
"""
from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, NamedTuple, Tuple, Union

from .graph_store import GraphStore, UnknownHandleError
from .models import Transaction, TransferType

log = logging.getLogger(__name__)


class TransferRecord(NamedTuple):
    amount: float
    step: int
    transfer_type: TransferType
    is_fraud_label: bool


class AccountNode(NamedTuple):
    handle: int
    account_id: str


AccountRef = Union[int, str]


class UnknownAccountError(UnknownHandleError):
    """Raised when an account id was never seen by the graph."""

    def __init__(self, account_id: str, account_count: int):
        super().__init__(account_id, account_count)
        self.args = (f"Unknown account {account_id!r} (graph holds {account_count} accounts)",)


class TransactionGraph:
    """Directed multigraph of accounts (nodes) and transfers (edge buckets)."""

    def __init__(self) -> None:
        self.store: GraphStore[str, TransferRecord] = GraphStore()
        self._index: dict[str, int] = {}
        self._transaction_count = 0
        self._fraud_label_count = 0

    @classmethod
    def from_transactions(cls, transactions: Iterable[Transaction]) -> "TransactionGraph":
        graph = cls()
        graph.add_transactions(transactions)
        log.info(
            "Graph built: %d accounts, %d account pairs, %d transfers",
            graph.account_count,
            graph.store.edge_count(),
            graph.transaction_count,
        )
        return graph

    # ── Ingestion ─────────────────────────────────────────────────────────────
    def add_transaction(self, tx: Transaction) -> Tuple[int, int]:
        """Insert one transaction and return its ``(origin, destination)`` handles."""
        origin = self._intern(tx.origin_account)
        dest = self._intern(tx.dest_account)
        self.store.add_edge(
            origin,
            dest,
            TransferRecord(tx.amount, tx.step, tx.transfer_type, tx.is_fraud_label),
        )
        self._transaction_count += 1
        if tx.is_fraud_label:
            self._fraud_label_count += 1
        return origin, dest

    def add_transactions(self, transactions: Iterable[Transaction]) -> int:
        """Insert every transaction in order; return how many were added."""
        added = 0
        for tx in transactions:
            self.add_transaction(tx)
            added += 1
        return added

    def _intern(self, account_id: str) -> int:
        handle = self._index.get(account_id)
        if handle is None:
            handle = self.store.add_node(account_id)
            self._index[account_id] = handle
        return handle

    # ── Lookup ────────────────────────────────────────────────────────────────
    def handle_of(self, account_id: str) -> int:
        """Handle for ``account_id``.  Raises UnknownAccountError for an account never seen."""
        handle = self._index.get(account_id)
        if handle is None:
            raise UnknownAccountError(account_id, self.account_count)
        return handle

    def account_id(self, handle: int) -> str:
        return self.store.node(handle)

    def account(self, handle: int) -> AccountNode:
        return AccountNode(handle, self.store.node(handle))

    def accounts(self) -> Iterator[AccountNode]:
        for handle, account_id in self.store.nodes():
            yield AccountNode(handle, account_id)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._index

    def transfers(self, origin: AccountRef, dest: AccountRef) -> Tuple[TransferRecord, ...]:
        """Every transfer recorded from ``origin`` to ``dest``, in ingestion order."""
        return self.store.edge_weights(self._resolve(origin), self._resolve(dest))

    def edge_keys(self, account: AccountRef) -> List[Tuple[int, int]]:
        """
        Ordered pairs touching ``account``: outgoing pairs first, then incoming.

        Served from the adjacency index, so the cost is the account's degree
        rather than the size of the edge table.
        """
        handle = self._resolve(account)
        keys = [(handle, target) for target, _ in self.store.out_edges(handle)]
        keys.extend((source, handle) for source, _ in self.store.in_edges(handle))
        return keys

    def _resolve(self, account: AccountRef) -> int:
        if isinstance(account, str):
            return self.handle_of(account)
        return account

    # ── Size ──────────────────────────────────────────────────────────────────
    @property
    def account_count(self) -> int:
        return self.store.node_count()

    @property
    def transaction_count(self) -> int:
        return self._transaction_count

    @property
    def labelled_fraud_count(self) -> int:
        """Transactions carrying the dataset's fraud label (informational only)."""
        return self._fraud_label_count

"""Shared balance book: zero-default balances, event fan-out, undo-log rollback."""

from __future__ import annotations

from contextlib import contextmanager
from functools import partial
from typing import Any, Callable, Hashable, Iterator

import structlog

from ctfledger.errors import InsufficientBalance, InvalidAddress, InvalidAmount
from ctfledger.ids.derive import normalize_address
from ctfledger.models.events import LedgerEvent

log = structlog.get_logger(__name__)

ZERO_ADDRESS = "0x" + "00" * 20
MAX_UINT256 = 2**256 - 1

EventListener = Callable[[LedgerEvent], None]

_MISSING = object()


def check_amount(amount: int) -> int:
    """Amounts are uint256 ints."""
    if isinstance(amount, bool) or not isinstance(amount, int) or not 0 <= amount <= MAX_UINT256:
        raise InvalidAmount(f"amount must be a uint256, got {amount!r}")
    return amount


def canonical_address(address: str) -> str:
    """Book key for an account: one account whatever the hex case it is written in."""
    try:
        return normalize_address(address)
    except (TypeError, ValueError) as e:
        raise InvalidAddress(address) from e


class BalanceBook:
    """
    Balances keyed by (owner, token key), defaulting to zero.

    Every mutation should run inside atomic(): on any exception the entries
    written inside are put back from an undo log and events emitted inside are
    discarded. Events are delivered to listeners only when the outermost atomic
    block completes.
    """

    def __init__(self, address: str, name: str = "") -> None:
        self.address = canonical_address(address)
        self.name = name
        self._balances: dict[tuple[str, Hashable], int] = {}
        self._listeners: list[EventListener] = []
        self._pending: list[LedgerEvent] = []
        self._after: list[Callable[[], None]] = []
        self._journal: list[tuple[dict[Any, Any], Any, Any]] = []
        self._depth = 0

    # --- reads ---
    def _balance(self, owner: str, key: Hashable) -> int:
        return self._balances.get((owner, key), 0)

    def holders(self) -> dict[tuple[str, Hashable], int]:
        """Non-zero balances."""
        return {k: v for k, v in self._balances.items() if v}

    # --- writes ---
    def _write(self, mapping: dict[Any, Any], key: Any, value: Any) -> None:
        """Set mapping[key], or drop it when value is None; logged for rollback."""
        if self._depth:
            self._journal.append((mapping, key, mapping.get(key, _MISSING)))
        if value is None:
            mapping.pop(key, None)
        else:
            mapping[key] = value

    def _credit(self, owner: str, key: Hashable, amount: int) -> None:
        new = self._balance(owner, key) + amount
        if new > MAX_UINT256:
            raise InvalidAmount(f"balance overflow for {owner} on {key}")
        self._write(self._balances, (owner, key), new)

    def _debit(self, owner: str, key: Hashable, amount: int) -> None:
        balance = self._balance(owner, key)
        if balance < amount:
            raise InsufficientBalance(owner, key, balance, amount)
        self._write(self._balances, (owner, key), balance - amount or None)

    # --- events ---
    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: LedgerEvent) -> None:
        if self._depth:
            self._pending.append(event)
        else:
            self._deliver(event)

    def _deliver(self, event: LedgerEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _deliver_all(self, events: list[LedgerEvent]) -> None:
        for event in events:
            self._deliver(event)

    # --- atomicity ---
    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run callback once the open outermost atomic block succeeds; now if none is open."""
        if self._depth:
            self._after.append(callback)
        else:
            callback()

    def _undo(self, mark: int) -> None:
        while len(self._journal) > mark:
            mapping, key, old = self._journal.pop()
            if old is _MISSING:
                mapping.pop(key, None)
            else:
                mapping[key] = old

    @contextmanager
    def atomic(self, deliver_after: BalanceBook | None = None) -> Iterator[None]:
        """
        deliver_after: a book whose own atomic block is still open; this book's
        events then wait for that block to commit instead of going out first.
        """
        journal_mark = len(self._journal)
        pending_mark = len(self._pending)
        after_mark = len(self._after)
        self._depth += 1
        try:
            yield
        except BaseException:
            self._undo(journal_mark)
            del self._pending[pending_mark:]
            del self._after[after_mark:]
            log.debug("book_rolled_back", book=self.name or self.address)
            raise
        finally:
            self._depth -= 1
        if self._depth == 0:
            self._journal.clear()
            pending, self._pending = self._pending, []
            after, self._after = self._after, []
            if deliver_after is not None and deliver_after.in_transaction:
                deliver_after.after_commit(partial(self._deliver_all, pending))
            else:
                self._deliver_all(pending)
            for callback in after:
                callback()

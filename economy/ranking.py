"""Leaderboard over stored balances."""
from __future__ import annotations

from typing import List, Tuple

from economy.store import RecordStore


class RankingView:
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def top(self, n: int) -> List[Tuple[str, int]]:
        """Top ``n`` ``(user_id, balance)`` pairs; richest first, ties by ascending id."""

        if n <= 0:
            return []
        rows = [(user_id, self.store.load(user_id).balance) for user_id in self.store.list_ids()]
        rows.sort(key=lambda row: (-row[1], row[0]))
        return rows[:n]


__all__ = ["RankingView"]

"""
Optimistic views: confirmed ledger data with the not-yet-confirmed local writes folded in.

Both functions are pure. Inputs are never mutated and nothing here is persisted; the result is recomputed on every read.
"""

import math
from dataclasses import replace
from typing import Sequence

from ledger_sync.core.models import EnrichedGameRecord, PendingSubmission, PlayerStats, Score
from ledger_sync.scoring.roles import farmer_score


def pending_to_record(pending: PendingSubmission, game_number: int) -> EnrichedGameRecord:
    """Synthetic history row for a queued submission."""
    farmer = farmer_score(pending.landlord_score)
    return EnrichedGameRecord(
        timestamp=pending.timestamp,
        scores={
            pending.landlord: pending.landlord_score,
            pending.farmer1: farmer,
            pending.farmer2: farmer,
        },
        game_number=game_number,
        landlord=pending.landlord,
        farmer1=pending.farmer1,
        farmer2=pending.farmer2,
        landlord_score=pending.landlord_score,
        is_current_round=True,
        is_pending=True,
        pending_id=pending.id,
    )


def merge_history(
    server_records: Sequence[EnrichedGameRecord],
    pending: Sequence[PendingSubmission],
) -> Sequence[EnrichedGameRecord]:
    """
    Newest-first history with pending writes on top.

    Game numbers continue from the newest server record in queue order, then the pending block is reversed so the
    most recently queued write comes first. Without pending writes the server records are returned as-is.
    """
    if not pending:
        return server_records

    newest_number = server_records[0].game_number if server_records else 0
    pending_records = [
        pending_to_record(entry, newest_number + i + 1) for i, entry in enumerate(pending)
    ]
    return [*reversed(pending_records), *server_records]


def overlay_stats(
    server_stats: Sequence[PlayerStats],
    pending: Sequence[PendingSubmission],
) -> Sequence[PlayerStats]:
    """Per-player totals including pending writes, sorted by total score (highest first)."""
    if not pending:
        return server_stats

    by_name = {row.name: row for row in server_stats}
    for entry in pending:
        farmer = farmer_score(entry.landlord_score)
        for name in (entry.landlord, entry.farmer1, entry.farmer2):
            row = by_name.get(name) or PlayerStats(
                name=name,
                total_score=0,
                avg_score=0,
                games_played=0,
                win_rate=0,
                has_pending_data=True,
            )
            score = entry.landlord_score if name == entry.landlord else farmer
            by_name[name] = _add_game(row, score)

    return sorted(by_name.values(), key=lambda row: row.total_score, reverse=True)


def _add_game(row: PlayerStats, score: Score) -> PlayerStats:
    """
    Fold one game into a stats row.
    ---
    The win rate is only touched for a win, and the previous win count is recovered by rounding rate * games.
    That is an approximation (it can drift over repeated overlays) which existing screens rely on; keep it as is.
    """
    total = row.total_score + score
    games = row.games_played + 1
    win_rate = row.win_rate
    if score > 0:
        previous_wins = _round_half_up(row.win_rate / 100 * (games - 1))
        win_rate = (previous_wins + 1) / games * 100
    return replace(
        row,
        total_score=total,
        games_played=games,
        avg_score=total / games,
        win_rate=win_rate,
        has_pending_data=True,
    )


def _round_half_up(value: float) -> int:
    # round() would use banker's rounding
    return math.floor(value + 0.5)

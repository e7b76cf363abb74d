"""Unit tests for ledger_sync/scoring/overlay.py"""

import pytest

from ledger_sync.core.models import (
    EnrichedGameRecord,
    PendingSubmission,
    PlayerStats,
)
from ledger_sync.scoring.overlay import merge_history, overlay_stats, pending_to_record


def _server_record(number: int, timestamp: str = "2024-01-01 10:00:00") -> EnrichedGameRecord:
    return EnrichedGameRecord(
        timestamp=timestamp,
        scores={"A": 20, "B": -10, "C": -10},
        game_number=number,
        landlord="A",
        farmer1="B",
        farmer2="C",
        landlord_score=20,
    )


def _pending(pending_id: str, landlord: str = "P", farmer1: str = "E", farmer2: str = "L", score: int = 30) -> PendingSubmission:
    return PendingSubmission(
        id=pending_id,
        landlord=landlord,
        farmer1=farmer1,
        farmer2=farmer2,
        landlord_score=score,
        timestamp="2024-01-01T02:00:00.000Z",
    )


def _stats(name: str, total: float, games: int, win_rate: float) -> PlayerStats:
    return PlayerStats(
        name=name,
        total_score=total,
        avg_score=total / games if games else 0,
        games_played=games,
        win_rate=win_rate,
    )


# --- merge_history ----
def test_merge_without_pending_is_identity() -> None:
    server = [_server_record(2), _server_record(1)]
    assert merge_history(server, []) is server


def test_pending_record_shape() -> None:
    """A queued 30-point win shows each farmer at -15."""
    record = pending_to_record(_pending("x"), 8)
    assert record.scores == {"P": 30, "E": -15, "L": -15}
    assert record.landlord == "P"
    assert (record.farmer1, record.farmer2) == ("E", "L")
    assert record.game_number == 8
    assert record.is_pending is True
    assert record.is_current_round is True
    assert record.pending_id == "x"


def test_merge_puts_pending_first() -> None:
    server = [_server_record(5), _server_record(4)]
    merged = merge_history(server, [_pending("first"), _pending("second")])

    assert [r.pending_id for r in merged[:2]] == ["second", "first"]
    # Numbers continue from the newest server record in queue order
    assert [r.game_number for r in merged] == [7, 6, 5, 4]
    assert merged[2:] == server


def test_merge_with_empty_server_history() -> None:
    merged = merge_history([], [_pending("only")])
    assert len(merged) == 1
    assert merged[0].game_number == 1


# --- overlay_stats ----
def test_overlay_without_pending_is_identity() -> None:
    stats = [_stats("A", 10, 1, 100)]
    assert overlay_stats(stats, []) is stats


def test_overlay_adds_pending_game() -> None:
    stats = [_stats("P", 10, 2, 50), _stats("E", 40, 2, 100), _stats("L", -50, 2, 0)]
    result = {row.name: row for row in overlay_stats(stats, [_pending("x")])}

    landlord = result["P"]
    assert landlord.total_score == 40
    assert landlord.games_played == 3
    assert landlord.avg_score == pytest.approx(40 / 3)
    # 1 previous win (50% of 2) + this one
    assert landlord.win_rate == pytest.approx(2 / 3 * 100)
    assert landlord.has_pending_data is True

    farmer = result["E"]
    assert farmer.total_score == 25
    assert farmer.games_played == 3
    # A loss leaves the win rate alone
    assert farmer.win_rate == 100


def test_overlay_creates_rows_for_new_players_and_sorts() -> None:
    stats = [_stats("A", 5, 1, 100)]
    result = overlay_stats(stats, [_pending("x", landlord="N", farmer1="A", farmer2="M", score=40)])

    assert [row.name for row in result] == ["N", "A", "M"]
    new = result[0]
    assert new.total_score == 40
    assert new.games_played == 1
    assert new.win_rate == 100
    assert new.has_pending_data is True
    assert result[2].total_score == -20
    assert result[2].win_rate == 0


def test_overlay_win_rate_rounds_half_up() -> None:
    """Previous wins are recovered as round(rate * games), with .5 going up."""
    # 25% of 2 games = 0.5 wins, rounded up to 1
    stats = [_stats("P", 0, 2, 25)]
    result = {row.name: row for row in overlay_stats(stats, [_pending("x")])}
    assert result["P"].win_rate == pytest.approx(2 / 3 * 100)


def test_overlay_does_not_mutate_input() -> None:
    stats = [_stats("P", 10, 2, 50)]
    overlay_stats(stats, [_pending("x")])
    assert stats == [_stats("P", 10, 2, 50)]


def test_overlay_is_a_pure_function() -> None:
    """Same inputs, same output: nothing accumulates between calls."""
    stats = [_stats("P", 10, 2, 50), _stats("E", 0, 2, 50)]
    pending = [_pending("x"), _pending("y", score=-20)]
    assert overlay_stats(stats, pending) == overlay_stats(stats, pending)

"""
Landlord / farmer roles of a recorded game.

The ledger only stores `{player: score}` per game. In a 3-player round the landlord wins or loses the whole stake and the
two farmers each take the opposite of half of it, so the landlord is recognisable by the sign of the score.
"""

from typing import Optional

from ledger_sync.core.models import EnrichedGameRecord, GameRecord, PlayerName, Score

UNKNOWN_PLAYER = "?"


def farmer_score(landlord_score: Score) -> float:
    """Each farmer gets the opposite of half the landlord's score, so a game always sums to zero."""
    return -landlord_score / 2


def _sign(value: Score) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def identify_roles(
    scores: dict[PlayerName, Score],
) -> Optional[tuple[PlayerName, list[PlayerName]]]:
    """
    Return (landlord, [farmer1, farmer2]) for a 3-entry score map, None for any other size.
    ---
    The landlord is the only player whose (non-zero) sign differs from the two others.
    If no sign is unique (e.g. a zero-score game) the largest absolute score wins, first one in map order on ties.
    Farmers keep the map order.
    """
    players = list(scores)
    if len(players) != 3:
        return None

    values = [scores[p] for p in players]
    signs = [_sign(v) for v in values]

    landlord_idx = -1
    for i in range(3):
        others = [s for j, s in enumerate(signs) if j != i]
        if signs[i] != 0 and others[0] == others[1] and signs[i] != others[0]:
            landlord_idx = i
            break

    if landlord_idx == -1:
        max_abs = -1.0
        for i, value in enumerate(values):
            if abs(value) > max_abs:
                max_abs = abs(value)
                landlord_idx = i

    farmers = [p for i, p in enumerate(players) if i != landlord_idx]
    return players[landlord_idx], farmers


def enrich_game_record(record: GameRecord, game_number: int) -> EnrichedGameRecord:
    """Attach the game number and resolved roles to a raw ledger row."""
    roles = identify_roles(record.scores)
    if roles is None:
        # Not a 3-player row: keep the scores, label whoever is there
        players = list(record.scores) + [UNKNOWN_PLAYER] * 3
        return EnrichedGameRecord(
            timestamp=record.timestamp,
            scores=record.scores,
            game_number=game_number or 0,
            landlord=players[0],
            farmer1=players[1],
            farmer2=players[2],
            landlord_score=0,
        )

    landlord, (farmer1, farmer2) = roles
    return EnrichedGameRecord(
        timestamp=record.timestamp,
        scores=record.scores,
        game_number=game_number or 0,
        landlord=landlord,
        farmer1=farmer1,
        farmer2=farmer2,
        landlord_score=record.scores[landlord],
    )

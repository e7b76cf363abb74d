"""Grouping newest-first history into rounds (sessions of play separated by long pauses)."""

import re
from datetime import datetime, timedelta
from typing import Optional, Sequence

from ledger_sync.core.models import EnrichedGameRecord, Round

# History view splits rounds on pauses of at least this long
ROUND_GAP = timedelta(hours=12)
# "Current round" summary only follows games that are at most this far apart
CURRENT_ROUND_GAP = timedelta(hours=6)

_SERVER_FORMAT = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})\s+(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?")


def parse_timestamp(timestamp: str) -> Optional[datetime]:
    """
    Naive local datetime for either timestamp flavour found in history.

    Ledger rows use "YYYY-MM-DD HH:MM[:SS]" in local time, pending writes an ISO instant. Returns None when neither
    parses.
    """
    match = _SERVER_FORMAT.search(timestamp)
    if match:
        year, month, day, hour, minute, second = match.groups()
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second or 0)
        )
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _gap(newer: EnrichedGameRecord, older: EnrichedGameRecord) -> timedelta:
    newer_time = parse_timestamp(newer.timestamp)
    older_time = parse_timestamp(older.timestamp)
    if newer_time is None or older_time is None:
        return timedelta(0)
    return newer_time - older_time


def group_into_rounds(
    records: Sequence[EnrichedGameRecord],
    hide_last_round: bool = False,
    gap: timedelta = ROUND_GAP,
    now: Optional[datetime] = None,
) -> list[Round]:
    """
    Split newest-first records wherever two consecutive games are at least `gap` apart.

    `hide_last_round` drops the oldest round when more history exists beyond `records`, since it may be cut in half.
    The first round is flagged current when its newest game is less than `gap` old.
    """
    if not records:
        return []

    runs: list[list[EnrichedGameRecord]] = [[records[0]]]
    for previous, record in zip(records, records[1:]):
        if _gap(previous, record) >= gap:
            runs.append([record])
        else:
            runs[-1].append(record)

    if hide_last_round and len(runs) > 1:
        runs.pop()

    newest = parse_timestamp(runs[0][0].timestamp)
    now = now or datetime.now()
    is_current = newest is not None and now - newest < gap

    rounds = []
    for index, games in enumerate(runs):
        started = parse_timestamp(games[0].timestamp)
        rounds.append(
            Round(
                index=index,
                started_on=started.strftime("%Y-%m-%d") if started else "",
                games=games,
                is_current=is_current and index == 0,
            )
        )
    return rounds


def current_round(
    records: Sequence[EnrichedGameRecord], gap: timedelta = CURRENT_ROUND_GAP
) -> list[EnrichedGameRecord]:
    """Leading run of newest-first records up to the first pause longer than `gap`."""
    if not records:
        return []

    result = [records[0]]
    for previous, record in zip(records, records[1:]):
        if _gap(previous, record) > gap:
            break
        result.append(record)
    return result

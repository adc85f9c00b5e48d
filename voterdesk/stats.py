from typing import Iterable, List, Optional, Tuple

from .schemas import (
    Countdown,
    DEFAULT_PARTY,
    ElectionSettings,
    GroupStats,
    SliceStats,
    TurnoutStats,
    VoterRecord,
)


CATEGORIES = ("total", "voted", "pending", "sheema", "sadiq", "communicated")

DAY_MS = 1000 * 60 * 60 * 24
HOUR_MS = 1000 * 60 * 60
MINUTE_MS = 1000 * 60


def percentage(voted: int, total: int) -> int:
    """round(voted / total * 100) rounding halves up; 0 for an empty set."""
    if total <= 0:
        return 0
    return (200 * voted + total) // (2 * total)


def _slice(voters: List[VoterRecord]) -> SliceStats:
    voted = sum(1 for v in voters if v.has_voted)
    return SliceStats(total=len(voters), voted=voted, percentage=percentage(voted, len(voters)))


def _group(voters: List[VoterRecord], key) -> List[GroupStats]:
    # dict conserva el orden de primera aparición
    counts = {}
    for v in voters:
        bucket = counts.setdefault(key(v), [0, 0])
        bucket[0] += 1
        if v.has_voted:
            bucket[1] += 1
    return [
        GroupStats(name=name, total=total, voted=voted, percentage=percentage(voted, total))
        for name, (total, voted) in counts.items()
    ]


def compute_stats(voters: Iterable[VoterRecord]) -> TurnoutStats:
    voters = list(voters)
    overall = _slice(voters)
    return TurnoutStats(
        total=overall.total,
        voted=overall.voted,
        pending=overall.total - overall.voted,
        percentage=overall.percentage,
        sheema=_slice([v for v in voters if v.sheema]),
        sadiq=_slice([v for v in voters if v.sadiq]),
        communicated=_slice([v for v in voters if v.communicated]),
        by_island=_group(voters, lambda v: v.island),
        by_party=_group(voters, lambda v: v.party),
    )


def _matches_category(v: VoterRecord, category: str) -> bool:
    if category == "voted":
        return v.has_voted
    if category == "pending":
        return not v.has_voted
    if category in ("sheema", "sadiq", "communicated"):
        return getattr(v, category)
    return True


def _matches_query(v: VoterRecord, query: str) -> bool:
    q = query.lower()
    return (
        q in v.full_name.lower()
        or q in v.id_card_number.lower()
        or q in v.island.lower()
        or q in (v.address or "").lower()
    )


def filter_voters(
    voters: Iterable[VoterRecord],
    island: Optional[str] = None,
    party: Optional[str] = None,
    category: Optional[str] = None,
    query: Optional[str] = None,
) -> List[VoterRecord]:
    """
    Voter list as shown by the status pages.

    Island, party and category filters are mutually exclusive and applied in
    that order of precedence. The text query always applies.
    """
    result = []
    for v in voters:
        if island:
            if v.island != island:
                continue
        elif party:
            if v.party != party:
                continue
        elif category and not _matches_category(v, category):
            continue
        if query and not _matches_query(v, query):
            continue
        result.append(v)
    return result


def _text_key(s: Optional[str]) -> Tuple[str, str]:
    s = s or ""
    return s.casefold(), s


def sort_for_listing(voters: Iterable[VoterRecord]) -> List[VoterRecord]:
    """Address, then full name; case-insensitive first, exact text breaks ties."""
    return sorted(voters, key=lambda v: (_text_key(v.address), _text_key(v.full_name)))


def countdown(config: ElectionSettings, now_ms: int) -> Countdown:
    start, end = config.election_start, config.election_end
    if start == 0:
        return Countdown(phase="not_configured")
    if now_ms >= end:
        return Countdown(phase="ended")
    if now_ms >= start:
        phase, distance = "running", end - now_ms
    else:
        phase, distance = "upcoming", start - now_ms
    return Countdown(
        phase=phase,
        days=distance // DAY_MS,
        hours=(distance % DAY_MS) // HOUR_MS,
        minutes=(distance % HOUR_MS) // MINUTE_MS,
    )

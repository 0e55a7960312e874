"""Service for ranking quiz participants by score."""

from __future__ import annotations

from answerthem.core.models import LeaderboardEntry, Participant


def build_leaderboard(participants: list[Participant], limit: int | None = None) -> list[LeaderboardEntry]:
    """Rank participants by score, highest first.

    ``participants`` must be in creation order: the sort is stable, so equal
    scores keep that order. Ranks are positions (1, 2, 3, ...), not
    competition ranks, so tied players still get distinct ranks.
    """
    ordered = sorted(participants, key=lambda p: p.score, reverse=True)
    if limit is not None:
        ordered = ordered[: max(0, limit)]
    return [
        LeaderboardEntry(
            rank=position,
            participant_id=participant.id,
            display_name=participant.display_name,
            score=participant.score,
            user_id=participant.user_id,
        )
        for position, participant in enumerate(ordered, start=1)
    ]

# messaging_api/core/reactions.py
from __future__ import annotations

from typing import Iterable, Mapping

from messaging_api.core.views import ReactionGroupView, UserSummaryView
from messaging_api.infrastructure.database.models.message_reaction_model import MessageReactionModel


def group_reactions(
    reactions: Iterable[MessageReactionModel],
    viewer_id: int | None,
    users: Mapping[int, UserSummaryView],
) -> list[ReactionGroupView]:
    """Aggregate reaction rows by emoji, groups ordered by their first reaction."""
    grouped: dict[str, list[MessageReactionModel]] = {}
    for r in sorted(reactions, key=lambda r: (r.created_at, r.id)):
        grouped.setdefault(r.emoji, []).append(r)

    out: list[ReactionGroupView] = []
    for emoji, rows in grouped.items():
        members = [users.get(r.user_id) or UserSummaryView.unknown(r.user_id) for r in rows]
        out.append(
            ReactionGroupView(
                emoji=emoji,
                users=members,
                count=len(members),
                has_current_user_reacted=viewer_id is not None and any(r.user_id == viewer_id for r in rows),
            )
        )
    return out

# messaging_api/core/interfaces/user_directory.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol


@dataclass(frozen=True)
class UserSummary:
    id: int
    username: str
    display_name: str
    avatar_url: str | None
    role: str
    last_seen_at: datetime | None


class UserDirectory(Protocol):
    def get_summary(self, user_id: int) -> UserSummary | None:
        ...

    def get_summaries(self, user_ids: Iterable[int]) -> dict[int, UserSummary]:
        ...

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass

from app.models.progress import utc_now_iso


def normalize_email(email: str | None) -> str:
    """Identity key for emails: trimmed and lowercased ("" when absent)."""
    return (email or "").strip().lower()


def new_user_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"user_{int(time.time() * 1000)}_{suffix}"


@dataclass(frozen=True, slots=True)
class User:
    id: str
    name: str
    email: str | None = None
    created_at: str | None = None  # ISO-8601, as written to the Users sheet

    @property
    def email_key(self) -> str:
        return normalize_email(self.email)

    @staticmethod
    def new(*, name: str, email: str | None = None, id: str | None = None) -> User:
        return User(
            id=id or new_user_id(),
            name=name,
            email=normalize_email(email) or None,
            created_at=utc_now_iso(),
        )

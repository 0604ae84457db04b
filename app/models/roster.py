from __future__ import annotations

from dataclasses import dataclass

from app.models.user import normalize_email


@dataclass(frozen=True, slots=True)
class RosterEntry:
    """A person expected to take the training, logged in or not."""

    email: str
    practice: str = ""
    status: str = ""

    @property
    def email_key(self) -> str:
        return normalize_email(self.email)

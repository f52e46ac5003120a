"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container). The store and the operations do
the work; the only behaviour here is producing the sanitized representation
that is safe to send to a client.

Layer rule: no imports from api/, web/, catalog/, or client/.
"""

from __future__ import annotations

from dataclasses import dataclass

# Keys of the outward-facing user representation. hashed_password is
# deliberately absent; to_public() builds its dict from this tuple only.
PUBLIC_FIELDS: tuple[str, ...] = (
    "id",
    "name",
    "email",
    "age",
    "is_active",
    "last_login",
    "created_at",
    "updated_at",
)


@dataclass
class User:
    """A registered account.

    hashed_password is None unless the store was explicitly asked to load it
    (find_by_email(..., include_password=True)). Timestamps are ISO 8601 UTC
    strings assigned by the store.

    role is carried for schema compatibility only. No auth flow reads it.
    """

    name: str
    email: str
    id: int | None = None
    age: int | None = None
    hashed_password: str | None = None
    role: str = "user"
    is_active: bool = True
    last_login: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_public(self) -> dict:
        """Return the sanitized user: every public field, never the hash."""
        return {key: getattr(self, key) for key in PUBLIC_FIELDS}

    def claims(self) -> dict:
        """Identity claims embedded in a session token."""
        return {"id": self.id, "email": self.email, "name": self.name}

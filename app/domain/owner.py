# app/domain/owner.py
from dataclasses import dataclass

from app.domain.errors import Unauthenticated

USER = "user"
GUEST = "guest"


@dataclass(frozen=True)
class Owner:
    """Tozsamosc wlasciciela koszyka: User(id) albo Guest(session_id)."""

    kind: str
    ident: str

    @classmethod
    def user(cls, user_id: int) -> "Owner":
        return cls(USER, str(user_id))

    @classmethod
    def guest(cls, session_id: str) -> "Owner":
        return cls(GUEST, session_id)

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.ident}"

    @property
    def is_user(self) -> bool:
        return self.kind == USER

    @property
    def user_id(self) -> int | None:
        return int(self.ident) if self.is_user else None


def resolve_owner(user_id: int | None, session_id: str | None) -> Owner:
    # zalogowany user ma pierwszenstwo przed sesja goscia
    if user_id is not None:
        return Owner.user(user_id)
    if session_id:
        return Owner.guest(session_id)
    raise Unauthenticated("A user or guest session is required.")


def require_user(user_id: int | None) -> Owner:
    if user_id is None:
        raise Unauthenticated()
    return Owner.user(user_id)

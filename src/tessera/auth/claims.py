"""Principal kinds and decoded token claims."""

import enum
from dataclasses import dataclass


class PrincipalKind(str, enum.Enum):
    """Who a token speaks for. Each kind has its own secret and lifetime."""

    ADMIN = "admin"
    USER = "user"


@dataclass(frozen=True)
class Claims:
    """Decoded token payload. Lives for one request, never persisted.

    Wire names: sub, kind, exp, iat (seconds since epoch).
    """

    subject: str
    kind: PrincipalKind
    expires_at: int
    issued_at: int

    def to_payload(self) -> dict:
        return {
            "sub": self.subject,
            "kind": self.kind.value,
            "exp": self.expires_at,
            "iat": self.issued_at,
        }

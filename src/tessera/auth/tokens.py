"""JWT token issuance and verification for admins and end users.

Learn: JWT (JSON Web Token) provides stateless authentication. There
are two principal kinds and each one gets its own HMAC secret and its
own lifetime:

- Admin tokens: platform administrators, provisioning routes
- User tokens: end users of a tenant project

Because the secrets differ, a user token can never pass signature
verification as an admin token. The kind is also written into the
payload ("kind" claim) so a mismatch can be reported cleanly.

Every verification failure collapses into one InvalidToken, whether
the signature is bad or the kind claim is wrong. The
caller never learns which check failed.

Expiry: a token is valid while now < exp + leeway. With the default
leeway of 0 a token is already expired at exactly `exp`, the same
rule PyJWT applies. Expiry is checked here against the injected clock
rather than inside jwt.decode() so tests can pin time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from tessera.auth.claims import Claims, PrincipalKind
from tessera.errors import ClockError, InvalidToken


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenPolicy:
    """Signing secret and lifetime for one principal kind."""

    secret: str
    lifetime: timedelta


class TokenService:
    """Issues and verifies bearer tokens. Holds only read-only config."""

    def __init__(
        self,
        admin: TokenPolicy,
        user: TokenPolicy,
        algorithm: str = "HS256",
        leeway_seconds: int = 0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if admin.secret == user.secret:
            raise ValueError("admin and user token secrets must differ")
        self._policies = {
            PrincipalKind.ADMIN: admin,
            PrincipalKind.USER: user,
        }
        self.algorithm = algorithm
        self.leeway_seconds = leeway_seconds
        self._clock = clock or utcnow

    @classmethod
    def from_settings(cls, settings) -> "TokenService":
        return cls(
            admin=TokenPolicy(
                secret=settings.admin_jwt_secret,
                lifetime=timedelta(minutes=settings.admin_access_token_expire_minutes),
            ),
            user=TokenPolicy(
                secret=settings.user_jwt_secret,
                lifetime=timedelta(minutes=settings.user_access_token_expire_minutes),
            ),
            algorithm=settings.jwt_algorithm,
            leeway_seconds=settings.token_leeway_seconds,
        )

    def policy_for(self, kind: PrincipalKind) -> TokenPolicy:
        return self._policies[PrincipalKind(kind)]

    def _now(self) -> datetime:
        try:
            return self._clock()
        except (OSError, OverflowError, ValueError) as e:
            raise ClockError() from e

    # ─── Issue ──────────────────────────────────────────

    def issue(self, subject_id: str, kind: PrincipalKind) -> str:
        """Create a signed token for `subject_id`.

        Raises ClockError if the system time can't be read.
        """
        kind = PrincipalKind(kind)
        policy = self.policy_for(kind)
        now = self._now()
        claims = Claims(
            subject=str(subject_id),
            kind=kind,
            expires_at=int((now + policy.lifetime).timestamp()),
            issued_at=int(now.timestamp()),
        )
        return jwt.encode(claims.to_payload(), policy.secret, algorithm=self.algorithm)

    def issue_admin_token(self, admin_id: str) -> str:
        return self.issue(admin_id, PrincipalKind.ADMIN)

    def issue_user_token(self, identity_id: str) -> str:
        return self.issue(identity_id, PrincipalKind.USER)

    # ─── Verify ─────────────────────────────────────────

    def decode(self, token: str, kind: PrincipalKind) -> Claims:
        """Check signature (with `kind`'s secret) and expiry.

        Returns the claims as encoded. The kind claim is NOT compared to
        `kind`. Use verify() unless you need to inspect the encoded kind.
        """
        policy = self.policy_for(kind)
        try:
            payload = jwt.decode(
                token,
                policy.secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["sub", "kind", "exp"],
                },
            )
            claims = Claims(
                subject=str(payload["sub"]),
                kind=PrincipalKind(payload["kind"]),
                expires_at=int(payload["exp"]),
                issued_at=int(payload.get("iat", 0)),
            )
        except (jwt.InvalidTokenError, ValueError, TypeError) as e:
            raise InvalidToken() from e

        now = self._now().timestamp()
        if now >= claims.expires_at + self.leeway_seconds:
            raise InvalidToken()
        return claims

    def verify(self, token: str, kind: PrincipalKind) -> Claims:
        """Full verification: signature, expiry, and matching kind."""
        claims = self.decode(token, kind)
        if claims.kind != PrincipalKind(kind):
            raise InvalidToken()
        return claims

    def expires_in(self, kind: PrincipalKind) -> int:
        """Lifetime of a fresh token of `kind`, in seconds."""
        return int(self.policy_for(kind).lifetime.total_seconds())

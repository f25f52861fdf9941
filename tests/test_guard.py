"""Admin escalation guard, without HTTP.

Learn: The guard's decision table:
    no header                    → HeaderMissing
    not "Bearer <token>"         → InvalidToken
    expired / forged admin token → InvalidToken
    valid user token             → Forbidden
    valid admin token            → claims (request proceeds)
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from tessera.auth.claims import PrincipalKind
from tessera.auth.guard import AdminGuard, extract_bearer_token
from tessera.auth.tokens import TokenPolicy, TokenService
from tessera.errors import ClockError, Forbidden, HeaderMissing, InvalidToken
from tessera.ids import new_id

ADMIN_SECRET = "guard-admin-secret-5e4d3c2b1a0f9e8d7c6b"
USER_SECRET = "guard-user-secret-1f2e3d4c5b6a79880716"
T0 = datetime(2026, 5, 10, 8, 30, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def tokens(clock):
    return TokenService(
        admin=TokenPolicy(ADMIN_SECRET, timedelta(minutes=10)),
        user=TokenPolicy(USER_SECRET, timedelta(minutes=30)),
        clock=clock,
    )


@pytest.fixture
def guard(tokens):
    return AdminGuard(tokens)


# ═══════════════════════════════════════════════════════════
# Header parsing
# ═══════════════════════════════════════════════════════════


def test_extract_bearer_token():
    assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"


def test_extract_scheme_is_case_insensitive():
    assert extract_bearer_token("bearer tok") == "tok"
    assert extract_bearer_token("BEARER tok") == "tok"


def test_extract_tolerates_surrounding_whitespace():
    assert extract_bearer_token("  Bearer   tok  ") == "tok"


@pytest.mark.parametrize("value", [None, "", "   "])
def test_extract_missing_header(value):
    with pytest.raises(HeaderMissing):
        extract_bearer_token(value)


@pytest.mark.parametrize(
    "value",
    ["Bearer", "tok", "Basic dXNlcjpwYXNz", "Bearer a b", "Token abc", "Bearer: abc"],
)
def test_extract_malformed_header(value):
    with pytest.raises(InvalidToken):
        extract_bearer_token(value)


# ═══════════════════════════════════════════════════════════
# Rejection matrix
# ═══════════════════════════════════════════════════════════


def test_no_header_is_header_missing(guard):
    with pytest.raises(HeaderMissing):
        guard.authorize(None)


def test_expired_admin_token_is_invalid(guard, tokens, clock):
    token = tokens.issue_admin_token(str(new_id()))
    clock.now = T0 + timedelta(minutes=10, seconds=1)
    with pytest.raises(InvalidToken):
        guard.authorize(f"Bearer {token}")


def test_user_token_is_forbidden(guard, tokens):
    token = tokens.issue_user_token(str(new_id()))
    with pytest.raises(Forbidden):
        guard.authorize(f"Bearer {token}")


def test_expired_user_token_is_invalid_not_forbidden(guard, tokens, clock):
    token = tokens.issue_user_token(str(new_id()))
    clock.now = T0 + timedelta(hours=1)
    with pytest.raises(InvalidToken):
        guard.authorize(f"Bearer {token}")


def test_admin_signed_token_claiming_user_kind_is_forbidden(guard):
    token = jwt.encode(
        {"sub": "s", "kind": "user", "exp": int(T0.timestamp()) + 60},
        ADMIN_SECRET,
        algorithm="HS256",
    )
    with pytest.raises(Forbidden):
        guard.authorize(f"Bearer {token}")


def test_token_from_unknown_secret_is_invalid(guard):
    token = jwt.encode(
        {"sub": "s", "kind": "admin", "exp": int(T0.timestamp()) + 60},
        "someone-elses-secret-000000000000000000",
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        guard.authorize(f"Bearer {token}")


def test_valid_admin_token_yields_subject(guard, tokens):
    admin_id = str(new_id())
    claims = guard.authorize(f"Bearer {tokens.issue_admin_token(admin_id)}")
    assert claims.subject == admin_id
    assert claims.kind is PrincipalKind.ADMIN


def test_clock_failure_propagates(guard, tokens):
    token = tokens.issue_admin_token("a")

    def broken():
        raise OSError("no clock")

    tokens._clock = broken
    with pytest.raises(ClockError):
        guard.authorize(f"Bearer {token}")

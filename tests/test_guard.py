"""Authorization guard tests — no HTTP, just the pipeline stage.

Learn: The guard is exercised through both of its forms: authorize()
(returns the verified identity or raises) and run(), which wraps a
next stage. For run() we record whether the next stage was called, since
a rejected request must have no side effect at all.
"""

from datetime import timedelta

import jwt
import pytest

from notekeeper.auth.guard import AuthorizationGuard, extract_bearer_token
from notekeeper.auth.jwt import CredentialManager
from notekeeper.errors import Forbidden, InvalidInput, Unauthorized

SECRET = "guard-test-secret-0123456789-abcdefghijklmnopqrstuvwxyz-0123456789-ABCD"
NOW = 1_700_000_000


class FakeClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def guard(clock):
    return AuthorizationGuard(CredentialManager(SECRET, clock=clock))


def _header(guard: AuthorizationGuard, user_id: int, seconds: int = 300) -> str:
    return "Bearer " + guard.credentials.issue(user_id, timedelta(seconds=seconds))


# ═══════════════════════════════════════════════════════════
# Path identity
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize("path_identity", ["abc", "0", "-1", "", "1.5", " 1"])
def test_invalid_path_identity(guard, ctx, path_identity):
    with pytest.raises(InvalidInput) as exc:
        guard.authorize(path_identity, _header(guard, 1), ctx)
    assert exc.value.detail == "invalid identity"


def test_path_identity_checked_before_header(guard, ctx):
    with pytest.raises(InvalidInput):
        guard.authorize("nope", None, ctx)


# ═══════════════════════════════════════════════════════════
# Header shape
# ═══════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    "header",
    [
        None,
        "",
        "Bearer",
        "Bearer ",
        "bearer abc",
        "Basic abc",
        "Bearer  abc",
        "Bearer abc def",
        " Bearer abc",
        "Token abc",
    ],
)
def test_malformed_header(guard, ctx, header):
    with pytest.raises(Unauthorized) as exc:
        guard.authorize("1", header, ctx)
    assert exc.value.detail == "malformed credential header"


def test_extract_bearer_token():
    assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"


# ═══════════════════════════════════════════════════════════
# Credential verification
# ═══════════════════════════════════════════════════════════


def test_expired_credential(guard, clock, ctx):
    header = _header(guard, 1, seconds=60)
    clock.now += 60
    with pytest.raises(Unauthorized) as exc:
        guard.authorize("1", header, ctx)
    assert exc.value.detail == "credential expired"


def test_foreign_credential(guard, ctx):
    token = jwt.encode(
        {"sub": "1", "exp": NOW + 60},
        "not-the-server-secret-0123456789-abcdefghijklmnopqrstuvwxyz-0123456789",
        algorithm="HS256",
    )
    with pytest.raises(Unauthorized) as exc:
        guard.authorize("1", f"Bearer {token}", ctx)
    assert exc.value.detail == "invalid credential"


def test_garbage_credential(guard, ctx):
    with pytest.raises(Unauthorized) as exc:
        guard.authorize("1", "Bearer garbage", ctx)
    assert exc.value.detail == "invalid credential"


# ═══════════════════════════════════════════════════════════
# Ownership
# ═══════════════════════════════════════════════════════════


def test_owner_is_admitted(guard, ctx):
    assert guard.authorize("7", _header(guard, 7), ctx) == 7


@pytest.mark.parametrize("path_identity,subject", [("1", 2), ("2", 1), ("10", 1)])
def test_other_owner_is_forbidden(guard, ctx, path_identity, subject):
    with pytest.raises(Forbidden) as exc:
        guard.authorize(path_identity, _header(guard, subject), ctx)
    assert exc.value.detail == "not permitted on this resource"


@pytest.mark.asyncio
async def test_run_forwards_verified_identity(guard, ctx):
    seen = []

    async def next_stage(identity: int) -> str:
        seen.append(identity)
        return "done"

    assert await guard.run("3", _header(guard, 3), next_stage, ctx) == "done"
    assert seen == [3]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path_identity,header_for,expected",
    [
        ("1", 2, Forbidden),
        ("x", 1, InvalidInput),
        ("1", None, Unauthorized),
    ],
)
async def test_run_never_calls_next_stage_on_rejection(
    guard, ctx, path_identity, header_for, expected
):
    called = False

    async def next_stage(identity: int) -> None:
        nonlocal called
        called = True

    header = _header(guard, header_for) if header_for else None
    with pytest.raises(expected):
        await guard.run(path_identity, header, next_stage, ctx)
    assert called is False

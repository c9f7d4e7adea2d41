import pytest
import sqlalchemy as sa

from socialgraph.reconciler import service as svc
from socialgraph.relationships import service as rel_svc
from socialgraph.users.models import User

API = "/api/v1/admin"


@pytest.fixture
def admin_headers(auth_headers, make_user):
    async def _headers():
        admin = await make_user("root")
        return auth_headers(admin, admin=True)

    return _headers


@pytest.mark.asyncio
async def test_non_admin_forbidden(client, auth_headers, alice) -> None:
    response = await client.post(f"{API}/reconcile/{alice.id}", headers=auth_headers(alice))

    assert response.status_code == 403
    assert response.json()["detail"] == "Administrator access required."


@pytest.mark.asyncio
async def test_reconcile_user(client, admin_headers, alice, bob, db_session, counts) -> None:
    await rel_svc.follow_user(db_session, alice.id, bob.id)
    await db_session.execute(sa.update(User).where(User.id == bob.id).values(followers_count=4))

    response = await client.post(f"{API}/reconcile/{bob.id}", headers=await admin_headers())

    body = response.json()
    assert response.status_code == 200
    assert body["corrected"] is True
    assert body["followers_before"] == 4
    assert body["followers_after"] == 1
    assert await counts(bob.id) == (1, 0)


@pytest.mark.asyncio
async def test_reconcile_all(client, admin_headers, alice, bob, db_session) -> None:
    await db_session.execute(sa.update(User).where(User.id == alice.id).values(following_count=2))

    response = await client.post(f"{API}/reconcile", headers=await admin_headers())

    body = response.json()
    assert body["checked"] == 3
    assert body["corrected"] == 1
    assert body["failed"] == []


@pytest.mark.asyncio
async def test_persistent_drift_is_500(client, admin_headers, alice, db_session, monkeypatch) -> None:
    async def _no_write(session, user_id, values):
        return None

    monkeypatch.setattr(svc, "_set_counts", _no_write)
    await db_session.execute(sa.update(User).where(User.id == alice.id).values(followers_count=3))

    response = await client.post(f"{API}/reconcile/{alice.id}", headers=await admin_headers())

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "internal_error"


@pytest.mark.asyncio
async def test_block_inspection(client, admin_headers, alice, bob, carol, db_session) -> None:
    await rel_svc.block_user(db_session, alice.id, carol.id)
    await rel_svc.block_user(db_session, bob.id, carol.id)
    headers = await admin_headers()

    blocked_by = await client.get(f"{API}/users/{carol.id}/blocked-by", headers=headers)
    stats = await client.get(f"{API}/users/{carol.id}/block-stats", headers=headers)

    assert blocked_by.json()["total"] == 2
    assert {item["user"]["username"] for item in blocked_by.json()["users"]} == {"alice", "bob"}
    assert stats.json() == {"blocking": 0, "blocked_by": 2}

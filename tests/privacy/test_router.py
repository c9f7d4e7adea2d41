import pytest

from socialgraph.relationships import service as rel_svc

API = "/api/v1/privacy"


@pytest.mark.asyncio
async def test_get_defaults(client, auth_headers, alice) -> None:
    response = await client.get(API, headers=auth_headers(alice))

    settings = response.json()["settings"]
    assert response.status_code == 200
    assert settings["is_private"] is False
    assert settings["default_post_visibility"] == "public"
    assert settings["auto_approve_followers"] == []
    assert settings["notifications"]["follow_requests"] is True
    assert "notify_likes" not in settings


@pytest.mark.asyncio
async def test_update_nested_notifications(client, auth_headers, alice) -> None:
    response = await client.put(
        API,
        headers=auth_headers(alice),
        json={"settings": {"allow_messages": "mutual", "notifications": {"likes": False}}},
    )

    settings = response.json()["settings"]
    assert response.status_code == 200
    assert response.json()["message"] == "Privacy settings updated."
    assert settings["allow_messages"] == "mutual"
    assert settings["notifications"]["likes"] is False
    assert settings["notifications"]["comments"] is True


@pytest.mark.asyncio
async def test_going_private_turns_on_approval(client, auth_headers, alice) -> None:
    response = await client.put(API, headers=auth_headers(alice), json={"settings": {"is_private": True}})

    settings = response.json()["settings"]
    assert settings["is_private"] is True
    assert settings["require_follow_approval"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"settings": {"notifications": {"pokes": True}}},
        {"settings": {"default_post_visibility": "friends"}},
        {"settings": {"favourite_colour": "blue"}},
        {"is_private": True},
    ],
)
async def test_invalid_payloads_are_400(client, auth_headers, alice, payload) -> None:
    response = await client.put(API, headers=auth_headers(alice), json=payload)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_private_posts_with_open_interactions_rejected(client, auth_headers, alice) -> None:
    response = await client.put(
        API,
        headers=auth_headers(alice),
        json={"settings": {"default_post_visibility": "private"}},
    )

    assert response.status_code == 400
    assert "allow_comments" in response.json()["detail"]


@pytest.mark.asyncio
async def test_auto_approve_list_round_trips(client, auth_headers, alice, bob) -> None:
    response = await client.put(
        API,
        headers=auth_headers(alice),
        json={"settings": {"auto_approve_followers": [str(bob.id), str(bob.id)]}},
    )

    assert response.json()["settings"]["auto_approve_followers"] == [str(bob.id)]


@pytest.mark.asyncio
async def test_auto_approved_follower_skips_request(client, auth_headers, alice, bob, db_session) -> None:
    await client.put(
        API,
        headers=auth_headers(alice),
        json={"settings": {"is_private": True, "auto_approve_followers": [str(bob.id)]}},
    )

    response = await client.post(f"/api/v1/follow/{alice.id}", headers=auth_headers(bob))

    assert response.json()["pending"] is False
    assert await rel_svc.is_following(db_session, bob.id, alice.id)


@pytest.mark.asyncio
async def test_reset(client, auth_headers, alice) -> None:
    headers = auth_headers(alice)
    await client.put(API, headers=headers, json={"settings": {"is_private": True}})

    response = await client.post(f"{API}/reset", headers=headers)

    assert response.json()["settings"]["is_private"] is False
    assert response.json()["settings"]["require_follow_approval"] is False

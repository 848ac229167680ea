import json
from datetime import timedelta

import pytest

from alumni_hub.core.exceptions import InvalidArgumentError
from alumni_hub.models.user import ROLE_SUPER_ADMIN
from alumni_hub.services.group_chat_service import GroupChatService, parse_member_ids

from .conftest import auth, principal_for

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


async def create_group(client, creator, members, name="Class of 2010", **extra):
    data = {"group_name": name, "member_ids": json.dumps([m.user_id for m in members])}
    data.update(extra)
    return await client.post("/api/v1/groups", data=data, headers=auth(creator))


@pytest.fixture
async def trio(make_user, connect):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    carol = await make_user("Carol")
    await connect(alice, bob)
    await connect(alice, carol)
    return alice, bob, carol


def test_parse_member_ids_formats():
    assert parse_member_ids("[3, 1, 3]") == [3, 1]
    assert parse_member_ids("4,5, 4") == [4, 5]
    assert parse_member_ids([2, "7"]) == [2, 7]
    assert parse_member_ids(None) == []
    assert parse_member_ids("") == []
    with pytest.raises(InvalidArgumentError):
        parse_member_ids("[1, 2")
    with pytest.raises(InvalidArgumentError):
        parse_member_ids("a,b")


async def test_create_group_with_connections(client, trio, notifications_for):
    alice, bob, carol = trio

    response = await create_group(client, alice, [bob, carol], group_description="Reunion planning")
    assert response.status_code == 201
    group = response.json()["group"]
    assert group["group_name"] == "Class of 2010"
    assert group["created_by"] == alice.user_id
    assert group["member_count"] == 3

    details = await client.get(f"/api/v1/groups/{group['group_id']}", headers=auth(bob))
    body = details.json()["group"]
    assert body["my_role"] == "member"
    assert body["creator_first_name"] == "Alice"
    assert [(m["first_name"], m["role"]) for m in body["members"]] == [
        ("Alice", "admin"), ("Bob", "member"), ("Carol", "member")
    ]

    for member in (bob, carol):
        added = [n for n in await notifications_for(member.user_id) if n.notification_type == "system"]
        assert len(added) == 1
        assert added[0].related_id == group["group_id"]
    assert await notifications_for(alice.user_id) == []


async def test_create_group_validation(client, trio, make_user):
    alice, bob, _ = trio
    stranger = await make_user("Stranger")

    no_name = await create_group(client, alice, [bob], name="  ")
    assert no_name.status_code == 400
    assert no_name.json()["message"] == "Group name is required"

    no_members = await create_group(client, alice, [])
    assert no_members.status_code == 400
    assert no_members.json()["message"] == "At least one member is required"

    not_connected = await create_group(client, alice, [bob, stranger])
    assert not_connected.status_code == 400
    assert not_connected.json()["message"] == "You can only add your connections to a group"


async def test_group_avatar_must_be_an_image(client, trio):
    alice, bob, _ = trio
    response = await client.post(
        "/api/v1/groups",
        data={"group_name": "Pics", "member_ids": json.dumps([bob.user_id])},
        files={"group_avatar": ("avatar.pdf", b"%PDF", "application/pdf")},
        headers=auth(alice),
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/v1/groups",
        data={"group_name": "Pics", "member_ids": json.dumps([bob.user_id])},
        files={"group_avatar": ("avatar.png", PNG_BYTES, "image/png")},
        headers=auth(alice),
    )
    assert response.status_code == 201
    assert response.json()["group"]["group_avatar"].startswith("/uploads/groups/")


async def test_group_details_access(client, trio, make_user):
    alice, bob, _ = trio
    outsider = await make_user("Outsider")
    group_id = (await create_group(client, alice, [bob])).json()["group"]["group_id"]

    forbidden = await client.get(f"/api/v1/groups/{group_id}", headers=auth(outsider))
    assert forbidden.status_code == 403
    missing = await client.get("/api/v1/groups/9999", headers=auth(alice))
    assert missing.status_code == 404


async def test_update_group_requires_admin(client, trio):
    alice, bob, _ = trio
    group_id = (await create_group(client, alice, [bob])).json()["group"]["group_id"]

    denied = await client.put(f"/api/v1/groups/{group_id}", data={"group_name": "Mine"}, headers=auth(bob))
    assert denied.status_code == 403

    response = await client.put(
        f"/api/v1/groups/{group_id}", data={"group_name": "Renamed"}, headers=auth(alice)
    )
    assert response.status_code == 200
    details = await client.get(f"/api/v1/groups/{group_id}", headers=auth(alice))
    assert details.json()["group"]["group_name"] == "Renamed"


async def test_add_members(client, trio, make_user, connect):
    alice, bob, carol = trio
    dave = await make_user("Dave")
    await connect(alice, dave)
    group_id = (await create_group(client, alice, [bob])).json()["group"]["group_id"]

    by_member = await client.post(
        f"/api/v1/groups/{group_id}/members", json={"member_ids": [carol.user_id]}, headers=auth(bob)
    )
    assert by_member.status_code == 403

    response = await client.post(
        f"/api/v1/groups/{group_id}/members", json={"member_ids": [carol.user_id, dave.user_id]}, headers=auth(alice)
    )
    assert response.status_code == 200
    assert sorted(response.json()["added_members"]) == sorted([carol.user_id, dave.user_id])

    again = await client.post(
        f"/api/v1/groups/{group_id}/members", json={"member_ids": [bob.user_id]}, headers=auth(alice)
    )
    assert again.status_code == 400
    assert again.json()["message"] == "All selected members are already in the group"

    empty = await client.post(f"/api/v1/groups/{group_id}/members", json={"member_ids": []}, headers=auth(alice))
    assert empty.status_code == 400


async def test_removed_member_is_reactivated_on_add(client, trio):
    alice, bob, carol = trio
    group_id = (await create_group(client, alice, [bob, carol])).json()["group"]["group_id"]

    removed = await client.delete(f"/api/v1/groups/{group_id}/members/{bob.user_id}", headers=auth(alice))
    assert removed.status_code == 200
    assert (await client.get(f"/api/v1/groups/{group_id}", headers=auth(bob))).status_code == 403

    response = await client.post(
        f"/api/v1/groups/{group_id}/members", json={"member_ids": str(bob.user_id)}, headers=auth(alice)
    )
    assert response.status_code == 200
    assert response.json()["details"] == {"new_members": [], "reactivated_members": [bob.user_id]}
    assert (await client.get(f"/api/v1/groups/{group_id}", headers=auth(bob))).status_code == 200


async def test_creator_cannot_be_removed_or_leave(client, trio):
    alice, bob, _ = trio
    group_id = (await create_group(client, alice, [bob])).json()["group"]["group_id"]
    await client.put(f"/api/v1/groups/{group_id}/members/{bob.user_id}/role", json={"role": "admin"}, headers=auth(alice))

    remove_creator = await client.delete(f"/api/v1/groups/{group_id}/members/{alice.user_id}", headers=auth(bob))
    assert remove_creator.status_code == 400
    assert remove_creator.json()["message"] == "Cannot remove the group creator"

    leave = await client.delete(f"/api/v1/groups/{group_id}/leave", headers=auth(alice))
    assert leave.status_code == 400

    missing = await client.delete(f"/api/v1/groups/{group_id}/members/9999", headers=auth(alice))
    assert missing.status_code == 404


async def test_member_leaves_group(client, trio):
    alice, bob, _ = trio
    group_id = (await create_group(client, alice, [bob])).json()["group"]["group_id"]

    response = await client.delete(f"/api/v1/groups/{group_id}/leave", headers=auth(bob))
    assert response.status_code == 200

    send = await client.post(f"/api/v1/groups/{group_id}/messages", data={"message_text": "hi"}, headers=auth(bob))
    assert send.status_code == 403
    groups = await client.get("/api/v1/groups", headers=auth(bob))
    assert groups.json()["groups"] == []


async def test_member_roles(client, trio):
    alice, bob, carol = trio
    group_id = (await create_group(client, alice, [bob, carol])).json()["group"]["group_id"]
    role_url = f"/api/v1/groups/{group_id}/members/{{}}/role"

    invalid = await client.put(role_url.format(bob.user_id), json={"role": "owner"}, headers=auth(alice))
    assert invalid.status_code == 400

    by_member = await client.put(role_url.format(carol.user_id), json={"role": "admin"}, headers=auth(bob))
    assert by_member.status_code == 403

    promoted = await client.put(role_url.format(bob.user_id), json={"role": "admin"}, headers=auth(alice))
    assert promoted.status_code == 200
    assert promoted.json()["message"] == "Member promoted to admin successfully"

    # A promoted admin can manage members
    removed_by_bob = await client.delete(f"/api/v1/groups/{group_id}/members/{carol.user_id}", headers=auth(bob))
    assert removed_by_bob.status_code == 200

    demote_creator = await client.put(role_url.format(alice.user_id), json={"role": "member"}, headers=auth(bob))
    assert demote_creator.status_code == 400
    assert demote_creator.json()["message"] == "Cannot demote the group creator"

    demoted = await client.put(role_url.format(bob.user_id), json={"role": "member"}, headers=auth(alice))
    assert demoted.status_code == 200


async def test_delete_group(client, trio):
    alice, bob, _ = trio
    group_id = (await create_group(client, alice, [bob])).json()["group"]["group_id"]

    by_member = await client.delete(f"/api/v1/groups/{group_id}", headers=auth(bob))
    assert by_member.status_code == 403

    response = await client.delete(f"/api/v1/groups/{group_id}", headers=auth(alice))
    assert response.status_code == 200

    assert (await client.get(f"/api/v1/groups/{group_id}", headers=auth(alice))).status_code == 404
    assert (await client.get("/api/v1/groups", headers=auth(bob))).json()["groups"] == []


async def test_group_messages_and_unread_counts(client, trio):
    alice, bob, carol = trio
    group_id = (await create_group(client, alice, [bob, carol])).json()["group"]["group_id"]

    first = await client.post(f"/api/v1/groups/{group_id}/messages", data={"message_text": "Welcome!"}, headers=auth(alice))
    assert first.status_code == 201
    assert first.json()["data"]["sender_first_name"] == "Alice"
    await client.post(
        f"/api/v1/groups/{group_id}/messages",
        data={"message_text": ""},
        files=[("attachments", ("photo.png", PNG_BYTES, "image/png"))],
        headers=auth(bob),
    )

    empty = await client.post(f"/api/v1/groups/{group_id}/messages", data={"message_text": " "}, headers=auth(bob))
    assert empty.status_code == 400

    groups = (await client.get("/api/v1/groups", headers=auth(carol))).json()["groups"]
    assert len(groups) == 1
    assert groups[0]["unread_count"] == 2
    assert groups[0]["member_count"] == 3
    assert groups[0]["my_role"] == "member"

    alice_view = (await client.get("/api/v1/groups", headers=auth(alice))).json()["groups"][0]
    assert alice_view["unread_count"] == 1

    messages = await client.get(f"/api/v1/groups/{group_id}/messages", headers=auth(carol))
    body = messages.json()
    assert [m["sender_id"] for m in body["messages"]] == [alice.user_id, bob.user_id]
    assert body["messages"][1]["attachments"][0]["file_type"] == "image"
    assert body["pagination"]["total"] == 2

    groups = (await client.get("/api/v1/groups", headers=auth(carol))).json()["groups"]
    assert groups[0]["unread_count"] == 0


async def test_group_message_delete_for_self(client, trio):
    alice, bob, carol = trio
    group_id = (await create_group(client, alice, [bob, carol])).json()["group"]["group_id"]
    sent = await client.post(f"/api/v1/groups/{group_id}/messages", data={"message_text": "hello"}, headers=auth(alice))
    message_id = sent.json()["data"]["message_id"]

    response = await client.delete(f"/api/v1/groups/messages/{message_id}", headers=auth(bob))
    assert response.status_code == 200

    async def visible_to(user):
        result = await client.get(f"/api/v1/groups/{group_id}/messages", headers=auth(user))
        return [m["message_id"] for m in result.json()["messages"]]

    assert await visible_to(bob) == []
    assert await visible_to(carol) == [message_id]
    assert await visible_to(alice) == [message_id]

    await client.delete(f"/api/v1/groups/messages/{message_id}?delete_for=self", headers=auth(alice))
    assert await visible_to(alice) == []
    assert await visible_to(carol) == [message_id]


async def test_group_message_delete_for_everyone(client, trio, make_user):
    alice, bob, carol = trio
    outsider = await make_user("Outsider")
    group_id = (await create_group(client, alice, [bob, carol])).json()["group"]["group_id"]
    sent = await client.post(f"/api/v1/groups/{group_id}/messages", data={"message_text": "typo"}, headers=auth(bob))
    message_id = sent.json()["data"]["message_id"]

    not_member = await client.delete(f"/api/v1/groups/messages/{message_id}", headers=auth(outsider))
    assert not_member.status_code == 403

    not_sender = await client.delete(f"/api/v1/groups/messages/{message_id}?delete_for=everyone", headers=auth(alice))
    assert not_sender.status_code == 403

    response = await client.delete(f"/api/v1/groups/messages/{message_id}?delete_for=everyone", headers=auth(bob))
    assert response.status_code == 200
    assert response.json()["message"] == "Message deleted for everyone"

    messages = await client.get(f"/api/v1/groups/{group_id}/messages", headers=auth(carol))
    assert messages.json()["messages"] == []


async def test_group_delete_for_everyone_window(session, trio):
    alice, bob, _ = trio
    clock = {}
    service = GroupChatService(session, clock=lambda: clock["now"])
    group = await service.create_group(principal_for(alice), "Window", member_ids=[bob.user_id])
    data = await service.send_group_message(principal_for(alice), group["group_id"], "late")

    clock["now"] = data["created_at"] + timedelta(minutes=15, seconds=1)
    with pytest.raises(InvalidArgumentError):
        await service.delete_group_message(principal_for(alice), data["message_id"], "everyone")

    clock["now"] = data["created_at"] + timedelta(minutes=14, seconds=59)
    scope = await service.delete_group_message(principal_for(alice), data["message_id"], "everyone")
    assert scope == "everyone"


async def test_adding_a_non_connection_changes_nothing(client, trio, make_user):
    alice, bob, carol = trio
    stranger = await make_user("Stranger")
    group_id = (await create_group(client, alice, [bob])).json()["group"]["group_id"]

    response = await client.post(
        f"/api/v1/groups/{group_id}/members",
        json={"member_ids": [carol.user_id, stranger.user_id]},
        headers=auth(alice),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "You can only add your connections to a group"

    details = (await client.get(f"/api/v1/groups/{group_id}", headers=auth(alice))).json()["group"]
    assert details["member_count"] == 2
    assert [m["first_name"] for m in details["members"]] == ["Alice", "Bob"]


async def test_administrators_are_kept_out_of_groups(client, trio, make_user, make_school_admin):
    alice, bob, _ = trio
    group_id = (await create_group(client, alice, [bob])).json()["group"]["group_id"]
    # admin_id 1 matches Alice's user_id
    school_admin = await make_school_admin()
    director = await make_user("Dana", role=ROLE_SUPER_ADMIN)
    assert school_admin.admin_id == alice.user_id

    for admin in (school_admin, director):
        created = await client.post(
            "/api/v1/groups",
            data={"group_name": "Staff", "member_ids": json.dumps([bob.user_id])},
            headers=auth(admin),
        )
        assert created.status_code == 403

        sent = await client.post(
            f"/api/v1/groups/{group_id}/messages", data={"message_text": "hello"}, headers=auth(admin)
        )
        assert sent.status_code == 403

        details = await client.get(f"/api/v1/groups/{group_id}", headers=auth(admin))
        assert details.status_code == 403

        history = await client.get(f"/api/v1/groups/{group_id}/messages", headers=auth(admin))
        assert history.status_code == 403

    assert (await client.get("/api/v1/groups", headers=auth(school_admin))).json()["groups"] == []
    messages = (await client.get(f"/api/v1/groups/{group_id}/messages", headers=auth(bob))).json()
    assert messages["messages"] == []


async def test_hidden_message_drops_out_of_group_list(client, trio):
    alice, bob, carol = trio
    group_id = (await create_group(client, alice, [bob, carol])).json()["group"]["group_id"]
    sent = await client.post(f"/api/v1/groups/{group_id}/messages", data={"message_text": "hi"}, headers=auth(alice))
    message_id = sent.json()["data"]["message_id"]

    await client.delete(f"/api/v1/groups/messages/{message_id}", headers=auth(bob))

    bob_view = (await client.get("/api/v1/groups", headers=auth(bob))).json()["groups"][0]
    assert bob_view["unread_count"] == 0
    assert bob_view["last_message"] is None
    assert bob_view["last_message_time"] is None

    carol_view = (await client.get("/api/v1/groups", headers=auth(carol))).json()["groups"][0]
    assert carol_view["unread_count"] == 1
    assert carol_view["last_message"] == "hi"

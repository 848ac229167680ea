import pytest

from alumni_hub.core.exceptions import ConflictError
from alumni_hub.models import AlumniEducation, School, WorkExperience
from alumni_hub.core.database import AsyncSessionLocal
from alumni_hub.models.user import ROLE_SUPER_ADMIN
from alumni_hub.services.connection_service import ConnectionService

from .conftest import auth, principal_for


async def send(client, sender, receiver_id):
    return await client.post(
        "/api/v1/connections/send", json={"receiver_id": receiver_id}, headers=auth(sender)
    )


async def test_send_request_creates_pending_connection(client, make_user, mailer, notifications_for):
    alice = await make_user("Alice")
    bob = await make_user("Bob")

    response = await send(client, alice, bob.user_id)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["connection_id"] > 0

    status = await client.get(f"/api/v1/connections/status/{bob.user_id}", headers=auth(alice))
    assert status.json()["status"] == "sent"
    status = await client.get(f"/api/v1/connections/status/{alice.user_id}", headers=auth(bob))
    assert status.json()["status"] == "received"

    notifications = await notifications_for(bob.user_id)
    assert [n.notification_type for n in notifications] == ["connection_request"]
    assert notifications[0].related_id == alice.user_id
    assert notifications[0].category == "connection"
    assert mailer.sent == [(bob.email, "connection_request", {
        "receiver_name": bob.full_name,
        "sender_name": alice.full_name,
        "sender_id": alice.user_id,
    })]


async def test_send_request_rejects_bad_targets(client, make_user):
    alice = await make_user("Alice")
    director = await make_user("Dana", role=ROLE_SUPER_ADMIN)

    response = await client.post("/api/v1/connections/send", json={}, headers=auth(alice))
    assert response.status_code == 400
    assert response.json()["message"] == "Receiver ID is required"

    response = await send(client, alice, alice.user_id)
    assert response.status_code == 400

    response = await send(client, alice, 99999)
    assert response.status_code == 404
    assert response.json()["message"] == "User not found"

    response = await send(client, alice, director.user_id)
    assert response.status_code == 403


async def test_send_request_to_inactive_user_is_not_found(client, make_user):
    alice = await make_user("Alice")
    gone = await make_user("Gone", is_active=False)

    response = await send(client, alice, gone.user_id)
    assert response.status_code == 404


async def test_admins_cannot_send_requests(client, make_user, make_school_admin):
    bob = await make_user("Bob")
    director = await make_user("Dana", role=ROLE_SUPER_ADMIN)
    school_admin = await make_school_admin()

    assert (await send(client, director, bob.user_id)).status_code == 403
    assert (await send(client, school_admin, bob.user_id)).status_code == 403


async def test_duplicate_requests_conflict_in_both_directions(client, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    assert (await send(client, alice, bob.user_id)).status_code == 201

    again = await send(client, alice, bob.user_id)
    assert again.status_code == 409
    assert again.json()["message"] == "Connection request already pending"

    reverse = await send(client, bob, alice.user_id)
    assert reverse.status_code == 409
    assert reverse.json()["message"] == "This user has already sent you a connection request"


async def test_unique_pair_violation_maps_to_conflict(session, make_user, mailer, monkeypatch):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    service = ConnectionService(session, mailer=mailer)
    await service.send_request(principal_for(bob), alice.user_id)

    # Simulate a concurrent request that passed the existence check
    async def no_existing(a, b):
        return None

    monkeypatch.setattr(service, "get_pair", no_existing)
    with pytest.raises(ConflictError):
        await service.send_request(principal_for(alice), bob.user_id)


async def test_accept_request(client, make_user, mailer, notifications_for):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    connection_id = (await send(client, alice, bob.user_id)).json()["connection_id"]

    by_sender = await client.put(f"/api/v1/connections/{connection_id}/accept", headers=auth(alice))
    assert by_sender.status_code == 403

    response = await client.put(f"/api/v1/connections/{connection_id}/accept", headers=auth(bob))
    assert response.status_code == 200

    for viewer, other in ((alice, bob), (bob, alice)):
        status = await client.get(f"/api/v1/connections/status/{other.user_id}", headers=auth(viewer))
        assert status.json()["status"] == "accepted"
        assert status.json()["connection_id"] == connection_id

    accepted = [n for n in await notifications_for(alice.user_id) if n.notification_type == "connection_accepted"]
    assert len(accepted) == 1
    assert accepted[0].related_id == bob.user_id
    assert mailer.sent[-1][:2] == (alice.email, "connection_accepted")

    again = await client.put(f"/api/v1/connections/{connection_id}/accept", headers=auth(bob))
    assert again.status_code == 409

    resend = await send(client, alice, bob.user_id)
    assert resend.status_code == 409
    assert resend.json()["message"] == "Already connected with this user"


async def test_accept_missing_request(client, make_user):
    bob = await make_user("Bob")
    response = await client.put("/api/v1/connections/4242/accept", headers=auth(bob))
    assert response.status_code == 404
    assert response.json()["message"] == "Connection request not found"


async def test_reject_deletes_request_without_notifying_sender(client, make_user, notifications_for):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    connection_id = (await send(client, alice, bob.user_id)).json()["connection_id"]

    by_sender = await client.put(f"/api/v1/connections/{connection_id}/reject", headers=auth(alice))
    assert by_sender.status_code == 403

    response = await client.put(f"/api/v1/connections/{connection_id}/reject", headers=auth(bob))
    assert response.status_code == 200

    status = await client.get(f"/api/v1/connections/status/{bob.user_id}", headers=auth(alice))
    assert status.json()["status"] == "none"
    assert await notifications_for(alice.user_id) == []

    # The pair is free again
    assert (await send(client, alice, bob.user_id)).status_code == 201


async def test_cancel_request_only_by_sender(client, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    connection_id = (await send(client, alice, bob.user_id)).json()["connection_id"]

    response = await client.delete(f"/api/v1/connections/request/{connection_id}/cancel", headers=auth(bob))
    assert response.status_code == 403

    response = await client.delete(f"/api/v1/connections/request/{connection_id}/cancel", headers=auth(alice))
    assert response.status_code == 200

    sent = await client.get("/api/v1/connections/sent", headers=auth(alice))
    assert sent.json()["requests"] == []


async def test_respond_to_request(client, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    connection_id = (await send(client, alice, bob.user_id)).json()["connection_id"]

    invalid = await client.put(
        f"/api/v1/connections/{connection_id}/respond", json={"status": "maybe"}, headers=auth(bob)
    )
    assert invalid.status_code == 400
    assert invalid.json()["message"] == 'Invalid status. Must be "accepted" or "rejected"'

    response = await client.put(
        f"/api/v1/connections/{connection_id}/respond", json={"status": "accepted"}, headers=auth(bob)
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Connection request accepted"


async def test_remove_connection(client, make_user, connect):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    carol = await make_user("Carol")
    connection = await connect(alice, bob)

    outsider = await client.delete(f"/api/v1/connections/{connection.connection_id}", headers=auth(carol))
    assert outsider.status_code == 403

    response = await client.delete(f"/api/v1/connections/{connection.connection_id}", headers=auth(bob))
    assert response.status_code == 200

    status = await client.get(f"/api/v1/connections/status/{bob.user_id}", headers=auth(alice))
    assert status.json()["status"] == "none"


async def test_remove_pending_request_is_not_found(client, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    connection_id = (await send(client, alice, bob.user_id)).json()["connection_id"]

    response = await client.delete(f"/api/v1/connections/{connection_id}", headers=auth(alice))
    assert response.status_code == 404


async def test_connection_status_special_cases(client, make_user, make_school_admin, make_mentorship):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    director = await make_user("Dana", role=ROLE_SUPER_ADMIN)
    school_admin = await make_school_admin()

    async def status_of(viewer, target_id):
        response = await client.get(f"/api/v1/connections/status/{target_id}", headers=auth(viewer))
        return response.json()

    assert (await status_of(alice, alice.user_id))["status"] == "self"
    assert (await status_of(alice, director.user_id))["status"] == "admin"
    assert (await status_of(school_admin, bob.user_id))["status"] == "admin_user"

    plain = await status_of(alice, bob.user_id)
    assert plain == {"success": True, "status": "none", "mentorship_relationship": False}

    await make_mentorship(alice, bob, status="requested")
    mentored = await status_of(bob, alice.user_id)
    assert mentored["status"] == "none"
    assert mentored["mentorship_relationship"] is True
    assert mentored["mentorship_status"] == "requested"
    assert mentored["is_mentor"] is False


async def test_list_connections_with_profile_details(client, make_user, connect):
    alice = await make_user("Alice")
    bob = await make_user("Bob", current_city="Lisbon")
    carol = await make_user("Carol")
    await connect(alice, bob)
    await connect(carol, alice)

    async with AsyncSessionLocal() as s:
        school = School(school_name="Riverside Academy")
        s.add(school)
        await s.flush()
        s.add(WorkExperience(user_id=bob.user_id, company_name="Acme Corp", position="Engineer", is_current=True))
        s.add(AlumniEducation(user_id=bob.user_id, school_id=school.school_id, end_year=2015, is_verified=True))
        await s.commit()

    response = await client.get("/api/v1/connections", headers=auth(alice))
    body = response.json()
    assert body["pagination"]["total"] == 2
    assert {c["connection_user_id"] for c in body["connections"]} == {bob.user_id, carol.user_id}

    found = await client.get("/api/v1/connections", params={"search": "acme"}, headers=auth(alice))
    connections = found.json()["connections"]
    assert len(connections) == 1
    assert connections[0]["company_name"] == "Acme Corp"
    assert connections[0]["school_name"] == "Riverside Academy"
    assert connections[0]["graduation_year"] == 2015
    assert connections[0]["current_city"] == "Lisbon"

    by_name = await client.get("/api/v1/connections", params={"search": "Carol"}, headers=auth(alice))
    assert [c["connection_user_id"] for c in by_name.json()["connections"]] == [carol.user_id]

    details = await client.get("/api/v1/connections/with-details", headers=auth(alice))
    assert [c["first_name"] for c in details.json()["connections"]] == ["Bob", "Carol"]


async def test_pending_and_sent_lists(client, make_user):
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    carol = await make_user("Carol")
    await send(client, bob, alice.user_id)
    await send(client, carol, alice.user_id)
    await send(client, alice, carol.user_id)  # conflicts, carol already asked

    pending = (await client.get("/api/v1/connections/pending", headers=auth(alice))).json()
    assert {r["user_id"] for r in pending["requests"]} == {bob.user_id, carol.user_id}
    assert pending["pagination"]["total"] == 2

    sent = (await client.get("/api/v1/connections/sent", headers=auth(bob))).json()
    assert [r["user_id"] for r in sent["requests"]] == [alice.user_id]


async def test_admin_listings_are_empty(client, make_user):
    director = await make_user("Dana", role=ROLE_SUPER_ADMIN)

    response = await client.get("/api/v1/connections", headers=auth(director))
    assert response.status_code == 200
    assert response.json()["connections"] == []
    pending = await client.get("/api/v1/connections/pending", headers=auth(director))
    assert pending.json()["requests"] == []

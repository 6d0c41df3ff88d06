"""Tests for participant routes."""

from fastapi.testclient import TestClient
from sqlmodel import Session

from planner.models import Item, Participant, Visibility

NEW_PARTICIPANT = {"name": "Dana", "last_name": "Levi", "contact_phone": "+15550000002"}


class TestListParticipants:
    """Tests for GET /plans/{plan_id}/participants."""

    def test_public_plan(self, client: TestClient, create_plan, add_participant):
        plan = create_plan()
        add_participant(plan)

        response = client.get(f"/plans/{plan.id}/participants")

        assert response.status_code == 200
        assert [p["role"] for p in response.json()] == ["owner", "participant"]

    def test_hidden_plan(self, client: TestClient, create_plan):
        plan = create_plan(visibility=Visibility.PRIVATE, created_by="user-a")

        response = client.get(f"/plans/{plan.id}/participants")

        assert response.status_code == 404
        assert response.json() == {"message": "Plan not found"}

    def test_tokens_only_for_managers(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan(created_by="user-a")
        add_participant(plan)

        anonymous = client.get(f"/plans/{plan.id}/participants").json()
        reader = client.get(f"/plans/{plan.id}/participants", headers=auth_headers(sub="user-b")).json()
        manager = client.get(f"/plans/{plan.id}/participants", headers=auth_headers(sub="user-a")).json()

        assert all("invite_token" not in p for p in anonymous + reader)
        assert all(len(p["invite_token"]) == 64 for p in manager)

class TestCreateParticipant:
    """Tests for POST /plans/{plan_id}/participants."""

    def test_creator_adds_participant(self, client: TestClient, create_plan, auth_headers):
        plan = create_plan(visibility=Visibility.INVITE_ONLY, created_by="user-a")

        response = client.post(
            f"/plans/{plan.id}/participants", json=NEW_PARTICIPANT, headers=auth_headers(sub="user-a")
        )

        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "participant"
        assert data["invite_status"] == "invited"
        assert len(data["invite_token"]) == 64
        assert data["user_id"] is None

    def test_requires_authentication(self, client: TestClient, create_plan):
        plan = create_plan()

        response = client.post(f"/plans/{plan.id}/participants", json=NEW_PARTICIPANT)

        assert response.status_code == 401

    def test_cannot_add_owner(self, client: TestClient, create_plan, auth_headers):
        plan = create_plan(created_by="user-a")

        response = client.post(
            f"/plans/{plan.id}/participants",
            json={**NEW_PARTICIPANT, "role": "owner"},
            headers=auth_headers(sub="user-a"),
        )

        assert response.status_code == 422


class TestGetParticipant:
    """Tests for GET /participants/{participant_id}."""

    def test_linked_user_gets_synced_row(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan(visibility=Visibility.INVITE_ONLY, created_by="user-c")
        participant = add_participant(plan, name="Old", user_id="user-a")

        response = client.get(
            f"/participants/{participant.id}",
            headers=auth_headers(sub="user-a", metadata={"first_name": "New", "avatar_url": "https://img/a.png"}),
        )

        assert response.status_code == 200
        assert response.json()["name"] == "New"
        assert response.json()["avatar_url"] == "https://img/a.png"

    def test_hidden_plan(self, client: TestClient, create_plan, add_participant):
        participant = add_participant(create_plan(visibility=Visibility.PRIVATE, created_by="user-a"))

        response = client.get(f"/participants/{participant.id}")

        assert response.status_code == 404
        assert response.json() == {"message": "Participant not found"}

    def test_token_hidden_from_reader(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan(created_by="user-a")
        participant = add_participant(plan)

        anonymous = client.get(f"/participants/{participant.id}")
        manager = client.get(f"/participants/{participant.id}", headers=auth_headers(sub="user-a"))

        assert anonymous.status_code == 200
        assert "invite_token" not in anonymous.json()
        assert manager.json()["invite_token"] == participant.invite_token

class TestUpdateParticipant:
    """Tests for PATCH /participants/{participant_id}."""

    def test_update_fields(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan(created_by="user-a")
        participant = add_participant(plan)

        response = client.patch(
            f"/participants/{participant.id}",
            json={"role": "viewer", "adults_count": 2, "rsvp_status": "confirmed"},
            headers=auth_headers(sub="user-a"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["role"] == "viewer"
        assert data["adults_count"] == 2
        assert data["rsvp_status"] == "confirmed"

    def test_owner_role_is_immutable(self, client: TestClient, create_plan, auth_headers):
        plan = create_plan(created_by="user-a")

        response = client.patch(
            f"/participants/{plan.owner_participant_id}",
            json={"role": "viewer"},
            headers=auth_headers(sub="user-a"),
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Cannot change role of owner participant"}

    def test_non_manager_gets_404(self, client: TestClient, create_plan, add_participant, auth_headers):
        participant = add_participant(create_plan(created_by="user-a"))

        response = client.patch(
            f"/participants/{participant.id}", json={"notes": "x"}, headers=auth_headers(sub="user-b")
        )

        assert response.status_code == 404


class TestDeleteParticipant:
    """Tests for DELETE /participants/{participant_id}."""

    def test_delete_unassigns_items(
        self, client: TestClient, session: Session, create_plan, add_participant, add_item, auth_headers
    ):
        plan = create_plan(created_by="user-a")
        participant = add_participant(plan)
        item = add_item(plan, assigned_to=participant)
        participant_id = participant.id

        response = client.delete(f"/participants/{participant_id}", headers=auth_headers(sub="user-a"))

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert session.get(Participant, participant_id) is None
        remaining = session.get(Item, item.id)
        assert remaining is not None
        assert remaining.assigned_participant_id is None

    def test_owner_cannot_be_deleted(self, client: TestClient, create_plan, auth_headers):
        plan = create_plan(created_by="user-a")

        response = client.delete(f"/participants/{plan.owner_participant_id}", headers=auth_headers(sub="user-a"))

        assert response.status_code == 400
        assert response.json() == {"message": "Cannot delete participant with owner role"}


class TestRegenerateToken:
    """Tests for POST /plans/{plan_id}/participants/{participant_id}/regenerate-token."""

    def test_old_token_stops_working(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan(created_by="user-a")
        participant = add_participant(plan)
        old_token = participant.invite_token

        response = client.post(
            f"/plans/{plan.id}/participants/{participant.id}/regenerate-token",
            headers=auth_headers(sub="user-a"),
        )

        assert response.status_code == 200
        new_token = response.json()["invite_token"]
        assert response.json()["participant_id"] == str(participant.id)
        assert new_token != old_token
        assert client.get(f"/plans/{plan.id}/invite/{old_token}").status_code == 404
        assert client.get(f"/plans/{plan.id}/invite/{new_token}").status_code == 200

    def test_participant_of_other_plan(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan(created_by="user-a")
        stranger = add_participant(create_plan(created_by="user-a", title="Other"))

        response = client.post(
            f"/plans/{plan.id}/participants/{stranger.id}/regenerate-token",
            headers=auth_headers(sub="user-a"),
        )

        assert response.status_code == 404
        assert response.json() == {"message": "Participant not found"}

    def test_claimed_participant(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan(created_by="user-a")
        participant = add_participant(plan, user_id="user-b")

        response = client.post(
            f"/plans/{plan.id}/participants/{participant.id}/regenerate-token",
            headers=auth_headers(sub="user-a"),
        )

        assert response.status_code == 409
        assert response.json() == {"message": "Cannot regenerate token for a claimed participant"}

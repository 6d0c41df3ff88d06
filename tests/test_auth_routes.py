"""Tests for the claim flow and /auth routes."""

from fastapi.testclient import TestClient
from sqlmodel import Session

from planner.access.tokens import generate_invite_token
from planner.models import UserDetails, Visibility


class TestClaim:
    """Tests for POST /plans/{plan_id}/claim/{invite_token}."""

    def test_claim(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan(visibility=Visibility.PRIVATE, created_by="user-c")
        participant = add_participant(plan)

        response = client.post(
            f"/plans/{plan.id}/claim/{participant.invite_token}",
            headers=auth_headers(sub="user-a", email="a@example.com", metadata={"first_name": "Ann"}),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == "user-a"
        assert data["invite_status"] == "accepted"
        assert data["invite_token"] is None
        assert data["name"] == "Ann"
        assert data["contact_email"] == "a@example.com"
        assert client.get(f"/plans/{plan.id}", headers=auth_headers(sub="user-a")).status_code == 200

    def test_linked_user_claim_is_idempotent(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan()
        participant = add_participant(plan, user_id="user-a")
        url = f"/plans/{plan.id}/claim/{participant.invite_token}"

        first = client.post(url, headers=auth_headers(sub="user-a"))
        second = client.post(url, headers=auth_headers(sub="user-a"))

        assert first.status_code == second.status_code == 200
        assert first.json()["updated_at"] == second.json()["updated_at"]

    def test_second_claim_with_same_token(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan()
        participant = add_participant(plan)
        url = f"/plans/{plan.id}/claim/{participant.invite_token}"

        first = client.post(url, headers=auth_headers(sub="user-a"))
        second = client.post(url, headers=auth_headers(sub="user-a"))

        assert first.status_code == 200
        assert second.status_code == 404
        assert second.json() == {"message": "Invalid invite token or plan not found"}

    def test_claim_linked_to_other_user(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan()
        participant = add_participant(plan, user_id="user-b")

        response = client.post(f"/plans/{plan.id}/claim/{participant.invite_token}", headers=auth_headers(sub="user-a"))

        assert response.status_code == 409
        assert response.json() == {"message": "This participant is already linked to another account"}

    def test_already_participant(self, client: TestClient, create_plan, add_participant, auth_headers):
        plan = create_plan()
        add_participant(plan, name="Existing", user_id="user-a")
        unclaimed = add_participant(plan, name="Unclaimed")

        response = client.post(f"/plans/{plan.id}/claim/{unclaimed.invite_token}", headers=auth_headers(sub="user-a"))

        assert response.status_code == 409
        assert response.json() == {"message": "You are already a participant in this plan"}

    def test_unknown_token(self, client: TestClient, create_plan, auth_headers):
        plan = create_plan()

        response = client.post(f"/plans/{plan.id}/claim/{generate_invite_token()}", headers=auth_headers(sub="user-a"))

        assert response.status_code == 404

    def test_requires_authentication(self, client: TestClient, create_plan, add_participant):
        plan = create_plan()
        participant = add_participant(plan)

        response = client.post(f"/plans/{plan.id}/claim/{participant.invite_token}")

        assert response.status_code == 401

    def test_invite_token_is_not_authentication(self, client: TestClient, create_plan, add_participant):
        plan = create_plan()
        participant = add_participant(plan)

        response = client.post(
            f"/plans/{plan.id}/claim/{participant.invite_token}",
            headers={"X-Invite-Token": participant.invite_token},
        )

        assert response.status_code == 401


class TestAuthMe:
    """Tests for GET /auth/me."""

    def test_me(self, client: TestClient, auth_headers):
        response = client.get("/auth/me", headers=auth_headers(sub="user-a", email="a@example.com"))

        assert response.status_code == 200
        assert response.json() == {"user": {"id": "user-a", "email": "a@example.com", "role": "authenticated"}}

    def test_admin_role(self, client: TestClient, auth_headers):
        response = client.get("/auth/me", headers=auth_headers(sub="boss", role="admin"))

        assert response.json()["user"]["role"] == "admin"

    def test_missing_token(self, client: TestClient):
        response = client.get("/auth/me")

        assert response.status_code == 401
        assert response.json() == {"message": "Authentication required"}

    def test_wrong_issuer(self, client: TestClient, auth_headers):
        response = client.get("/auth/me", headers=auth_headers(issuer="https://other.example.com/auth/v1"))

        assert response.status_code == 401
        assert response.json() == {"message": "JWT token present but verification failed"}


class TestProfile:
    """Tests for /auth/profile."""

    def test_profile_without_preferences(self, client: TestClient, auth_headers):
        response = client.get("/auth/profile", headers=auth_headers(sub="user-a"))

        assert response.status_code == 200
        assert response.json()["preferences"] is None

    def test_upsert_preferences(self, client: TestClient, session: Session, auth_headers):
        headers = auth_headers(sub="user-a")

        created = client.patch("/auth/profile", json={"allergies": "Peanuts"}, headers=headers)
        updated = client.patch("/auth/profile", json={"default_equipment": ["Tent"]}, headers=headers)

        assert created.status_code == updated.status_code == 200
        assert updated.json()["preferences"] == {
            "food_preferences": None,
            "allergies": "Peanuts",
            "default_equipment": ["Tent"],
        }
        assert session.get(UserDetails, "user-a").allergies == "Peanuts"
        assert client.get("/auth/profile", headers=headers).json()["preferences"]["allergies"] == "Peanuts"


class TestSyncProfile:
    """Tests for POST /auth/sync-profile."""

    def test_sync_converges(self, client: TestClient, create_plan, add_participant, auth_headers):
        add_participant(create_plan(title="First"), name="Old", user_id="user-a")
        add_participant(create_plan(title="Second"), name="Old", user_id="user-a")
        headers = auth_headers(sub="user-a", metadata={"first_name": "New"})

        assert client.post("/auth/sync-profile", headers=headers).json() == {"synced": 2}
        assert client.post("/auth/sync-profile", headers=headers).json() == {"synced": 0}

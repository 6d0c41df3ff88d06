"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from planner.access.invites import issue_invite
from planner.access.principals import PrincipalResolver
from planner.access.verifier import JwtVerifier
from planner.core.database import configure_sqlite, get_session
from planner.core.security import get_principal_resolver
from planner.main import app
from planner.models import Item, ItemCategory, Participant, ParticipantRole, Plan, Unit, Visibility

TEST_ISSUER = "https://test-project.supabase.co/auth/v1"


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="signing_key", scope="session")
def signing_key_fixture():
    """ES256 key pair standing in for the identity provider's JWKS key."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(name="verifier")
def verifier_fixture(signing_key) -> JwtVerifier:
    public_key = signing_key.public_key()
    return JwtVerifier(lambda token: public_key, issuer=TEST_ISSUER)


@pytest.fixture(name="resolver")
def resolver_fixture(verifier) -> PrincipalResolver:
    return PrincipalResolver(verifier, jwt_enabled=True)


@pytest.fixture(name="client")
def client_fixture(session: Session, resolver: PrincipalResolver):
    """Create a test client with the test database session and a JWT-enabled resolver."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_principal_resolver] = lambda: resolver
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="sign_token")
def sign_token_fixture(signing_key):
    """Return a function that signs a Supabase-style access token."""

    def sign(
        sub="user-a",
        email=None,
        role=None,
        metadata=None,
        issuer=TEST_ISSUER,
        expires_in=3600,
        key=None,
    ) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": sub,
            "iss": issuer,
            "iat": now,
            "exp": now + timedelta(seconds=expires_in),
            "role": "authenticated",
            "user_metadata": metadata or {},
        }
        if email is not None:
            payload["email"] = email
        if role is not None:
            payload["app_metadata"] = {"role": role}
        return jwt.encode(payload, key or signing_key, algorithm="ES256")

    return sign


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(sign_token):
    """Return a function building an Authorization header for the given claims."""

    def headers(**claims) -> dict[str, str]:
        return {"Authorization": f"Bearer {sign_token(**claims)}"}

    return headers


@pytest.fixture(name="create_plan")
def create_plan_fixture(session: Session):
    """Return a function creating a plan with its owner participant."""

    def create(
        visibility=Visibility.PUBLIC,
        created_by=None,
        owner_user_id=None,
        title="Camping Trip",
    ) -> Plan:
        plan = Plan(title=title, visibility=visibility, created_by_user_id=created_by)
        session.add(plan)
        session.flush()

        owner = Participant(
            plan_id=plan.id,
            user_id=owner_user_id,
            name="Alex",
            last_name="Guberman",
            contact_phone="+15550000001",
            role=ParticipantRole.OWNER,
        )
        issue_invite(owner)
        session.add(owner)
        session.flush()

        plan.owner_participant_id = owner.id
        session.add(plan)
        session.commit()
        session.refresh(plan)
        return plan

    return create


@pytest.fixture(name="add_participant")
def add_participant_fixture(session: Session):
    """Return a function adding an invited participant to a plan."""

    def add(plan: Plan, name="Dana", last_name="Levi", user_id=None, **fields) -> Participant:
        participant = Participant(
            plan_id=plan.id,
            user_id=user_id,
            name=name,
            last_name=last_name,
            contact_phone="+15550000002",
            **fields,
        )
        issue_invite(participant)
        session.add(participant)
        session.commit()
        session.refresh(participant)
        return participant

    return add


@pytest.fixture(name="add_item")
def add_item_fixture(session: Session):
    """Return a function adding an item to a plan."""

    def add(plan: Plan, name="Tent", assigned_to=None, category=ItemCategory.EQUIPMENT, unit=Unit.PCS) -> Item:
        item = Item(
            plan_id=plan.id,
            name=name,
            category=category,
            unit=unit,
            assigned_participant_id=assigned_to.id if assigned_to else None,
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    return add

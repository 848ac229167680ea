import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="alumnihub-tests-")

# Settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "testing"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ.pop("SMTP_HOST", None)

import pytest
from httpx import ASGITransport, AsyncClient

from alumni_hub.core.database import AsyncSessionLocal, engine
from alumni_hub.core.security import Principal, create_access_token
from alumni_hub.main import app
from alumni_hub.models import (
    Base, User, SchoolAdmin, School, Connection, Mentorship, Notification
)
from alumni_hub.models.connection import CONNECTION_ACCEPTED
from alumni_hub.models.user import ROLE_ALUMNI, ROLE_SCHOOL_ADMIN
from alumni_hub.services.email_service import EmailService, get_email_service
from sqlalchemy import select


class RecordingMailer(EmailService):
    """Keeps outgoing emails in memory instead of talking to SMTP."""

    def __init__(self):
        super().__init__(host="", sender="noreply@alumnihub.test")
        self.sent = []

    async def send(self, to, template, data):
        self.sent.append((to, template, data))


@pytest.fixture(autouse=True)
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    # Pooled aiosqlite connections belong to this test's event loop
    await engine.dispose()


@pytest.fixture
async def session():
    async with AsyncSessionLocal() as s:
        yield s


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
async def client(mailer):
    app.dependency_overrides[get_email_service] = lambda: mailer
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user():
    counter = {"n": 0}

    async def _make_user(first_name="Alum", last_name=None, role=ROLE_ALUMNI, is_active=True, **fields):
        counter["n"] += 1
        n = counter["n"]
        async with AsyncSessionLocal() as s:
            user = User(
                email=f"user{n}@alumnihub.test",
                first_name=first_name,
                last_name=last_name or f"User{n}",
                role=role,
                is_active=is_active,
                **fields
            )
            s.add(user)
            await s.commit()
            return user

    return _make_user


@pytest.fixture
def make_school_admin():
    async def _make_school_admin(first_name="School", last_name="Admin"):
        async with AsyncSessionLocal() as s:
            school = School(school_name="Springfield High")
            s.add(school)
            await s.flush()
            admin = SchoolAdmin(
                email=f"admin{school.school_id}@alumnihub.test",
                first_name=first_name,
                last_name=last_name,
                school_id=school.school_id,
            )
            s.add(admin)
            await s.commit()
            return admin

    return _make_school_admin


@pytest.fixture
def connect():
    """Insert an accepted connection between two users."""
    async def _connect(a, b):
        async with AsyncSessionLocal() as s:
            connection = Connection(sender_id=a.user_id, receiver_id=b.user_id, status=CONNECTION_ACCEPTED)
            s.add(connection)
            await s.commit()
            return connection

    return _connect


@pytest.fixture
def make_mentorship():
    async def _make_mentorship(mentor, mentee, status="active"):
        async with AsyncSessionLocal() as s:
            mentorship = Mentorship(mentor_id=mentor.user_id, mentee_id=mentee.user_id, status=status)
            s.add(mentorship)
            await s.commit()
            return mentorship

    return _make_mentorship


@pytest.fixture
def notifications_for():
    async def _notifications_for(user_id):
        async with AsyncSessionLocal() as s:
            result = await s.execute(
                select(Notification)
                .where(Notification.user_id == user_id)
                .order_by(Notification.notification_id)
            )
            return result.scalars().all()

    return _notifications_for


def auth(user) -> dict:
    if isinstance(user, SchoolAdmin):
        token = create_access_token(user.admin_id, ROLE_SCHOOL_ADMIN)
    else:
        token = create_access_token(user.user_id)
    return {"Authorization": f"Bearer {token}"}


def principal_for(user) -> Principal:
    return Principal(
        user_id=user.user_id,
        role=user.role,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
    )

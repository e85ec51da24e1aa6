import os
import uuid
from typing import Optional

# point the settings at SQLite before anything from kobciye is imported
os.environ.setdefault("DATABASE_ASYNC_URL", "sqlite+aiosqlite://")

import httpx
import pytest
from fake_backend import FakeBackend
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from kobciye.client.api import KobciyeClient
from kobciye.client.session import AppContext
from kobciye.core.enum import AppRole
from kobciye.db.models.database import (
    Base,
    Courses,
    Enrollments,
    Playlists,
    Profiles,
    UserRoles,
    Videos,
)
from kobciye.db.session import get_session
from kobciye.main import app

PASSWORD = "secret123"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


class Api:
    """Seeding and auth helpers shared by the backend tests."""

    def __init__(self, client: httpx.AsyncClient, session_factory):
        self.client = client
        self.session_factory = session_factory

    async def register(self, email: Optional[str] = None, credits: int = 0, roles=()) -> dict:
        email = email or f"user-{uuid.uuid4().hex[:8]}@kobciye.so"
        resp = await self.client.post(
            "/api/v1/auth/register", json={"email": email, "password": PASSWORD}
        )
        assert resp.status_code == 201, resp.text
        user_id = uuid.UUID(resp.json()["user_id"])

        login = await self.client.post(
            "/api/v1/auth/login", json={"email": email, "password": PASSWORD}
        )
        assert login.status_code == 200, login.text
        # callers pass the bearer header explicitly
        self.client.cookies.clear()

        if credits:
            await self.set_credits(user_id, credits)
        for role in roles:
            await self.grant_role(user_id, role)

        token = login.json()["access_token"]
        return {
            "id": user_id,
            "email": email,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    async def set_credits(self, user_id: uuid.UUID, credits: int) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(Profiles).where(Profiles.user_id == user_id).values(credits=credits)
            )
            await session.commit()

    async def grant_role(self, user_id: uuid.UUID, role: AppRole) -> None:
        async with self.session_factory() as session:
            session.add(UserRoles(user_id=user_id, role=role.value))
            await session.commit()

    async def credits_of(self, user_id: uuid.UUID) -> int:
        async with self.session_factory() as session:
            return await session.scalar(
                select(Profiles.credits).where(Profiles.user_id == user_id)
            )

    async def seed_course(
        self,
        price: int = 60,
        published: bool = True,
        videos: int = 2,
        free_first: bool = False,
        title: str = "Intro to Python",
        category: str = "programming",
    ) -> dict:
        async with self.session_factory() as session:
            course = Courses(
                title=title,
                title_so="Hordhac Python",
                category=category,
                instructor_name="Hodan",
                price=price,
                is_published=published,
            )
            session.add(course)
            await session.flush()

            playlist = Playlists(course_id=course.id, title="Basics", order_index=0)
            session.add(playlist)
            await session.flush()

            video_ids = []
            for i in range(videos):
                video = Videos(
                    playlist_id=playlist.id,
                    title=f"Lesson {i + 1}",
                    video_url=f"https://youtu.be/lesson{i + 1}",
                    duration_seconds=600,
                    is_free=free_first and i == 0,
                    order_index=i,
                )
                session.add(video)
                await session.flush()
                video_ids.append(video.id)

            course_id, playlist_id = course.id, playlist.id
            await session.commit()

        return {"id": course_id, "playlist_id": playlist_id, "video_ids": video_ids}

    async def enroll_directly(
        self, user_id: uuid.UUID, course_id: uuid.UUID, status="active", **fields
    ):
        async with self.session_factory() as session:
            enrollment = Enrollments(user_id=user_id, course_id=course_id, status=status, **fields)
            session.add(enrollment)
            await session.commit()
            return enrollment.id

    async def rpc(self, name: str, payload: dict, user: Optional[dict] = None) -> httpx.Response:
        headers = user["headers"] if user else {}
        return await self.client.post(f"/api/v1/rpc/{name}", json=payload, headers=headers)


@pytest.fixture
def api(client, session_factory):
    return Api(client, session_factory)


def _reads_from(statement, model) -> bool:
    final_froms = getattr(statement, "get_final_froms", None)
    return final_froms is not None and any(f is model.__table__ for f in final_froms())


@pytest.fixture
def interleave(monkeypatch):
    """Runs `competitor()` once, right after the first lookup on `model` that finds no row.

    Simulates a second request committing between a service's read and its write.
    """

    def install(model, competitor):
        unpatched = AsyncSession.scalar
        state = {"fired": False}

        async def scalar(self, statement, *args, **kwargs):
            result = await unpatched(self, statement, *args, **kwargs)
            if result is None and not state["fired"] and _reads_from(statement, model):
                state["fired"] = True
                await competitor()
            return result

        monkeypatch.setattr(AsyncSession, "scalar", scalar)
        return state

    return install


# ==============================
# CLIENT SDK
# ==============================
LEARNER_EMAIL = "learner@kobciye.so"


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def toasts():
    return []


@pytest.fixture
async def context(backend, toasts):
    http = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    ctx = AppContext(
        client=KobciyeClient(http=http, base_url="http://kobciye.test"),
        notifier=toasts.append,
    )
    yield ctx
    await ctx.aclose()
    await http.aclose()


@pytest.fixture
def learner_id(backend):
    return backend.add_user(LEARNER_EMAIL, credits=100)


@pytest.fixture
async def signed_in(context, learner_id):
    await context.sign_in(LEARNER_EMAIL, PASSWORD)
    return context

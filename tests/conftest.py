import os

os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["GITLAB_TOKEN"] = ""
os.environ["ATTENDANCE_TIMEZONE"] = "UTC"

from datetime import timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from internlink.constants.constants import AssignmentMode, ProgressStatus, TaskStatus, UserRole
from internlink.core.database import aget_db, register_models
from internlink.core.security import create_jwt_token
from internlink.main import app
from internlink.models.base import utcnow
from internlink.models.cohort import Cohort
from internlink.models.college import College
from internlink.models.task import Subtask, Task
from internlink.models.taskprogress import TaskProgress
from internlink.models.user import User


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata = register_models()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[aget_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_jwt_token({"sub": user.user_id})
    return {"Cookie": f"auth_token={token}"}


class Seeder:
    """Writes fixtures straight to the test database, one committed session per call."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._counter = 0

    async def add(self, *objects):
        async with self.session_factory() as session:
            session.add_all(objects)
            await session.commit()
        return objects[0] if len(objects) == 1 else objects

    async def user(self, role=UserRole.intern, name=None, **fields) -> User:
        self._counter += 1
        name = name or f"{role.value.title()} {self._counter}"
        return await self.add(
            User(
                username=fields.pop("username", f"{role.value}{self._counter}"),
                name=name,
                role=role,
                is_active=fields.pop("is_active", True),
                **fields,
            )
        )

    async def college(self, name="Kwame Nkrumah University") -> College:
        return await self.add(College(name=name, is_active=True))

    async def cohort(self, name="Cohort 2024A", **fields) -> Cohort:
        now = utcnow()
        return await self.add(
            Cohort(
                name=name,
                start_date=now - timedelta(days=30),
                end_date=now + timedelta(days=60),
                max_interns=50,
                is_active=True,
                **fields,
            )
        )

    async def task(self, assignee=None, cohort=None, points=None, subtasks=(), **fields) -> Task:
        self._counter += 1
        return await self.add(
            Task(
                title=fields.pop("title", f"Task {self._counter}"),
                description=fields.pop("description", "Do the work"),
                category=fields.pop("category", "development"),
                status=fields.pop("status", TaskStatus.active),
                assignment_mode=AssignmentMode.individual if assignee else AssignmentMode.cohort,
                assignee_id=assignee.user_id if assignee else None,
                cohort_id=cohort.cohort_id if cohort else None,
                points=points,
                due_date=utcnow() + timedelta(days=7),
                estimated_hours=0,
                is_active=True,
                subtasks=[Subtask(title=title, position=i) for i, title in enumerate(subtasks)],
                comments=[],
                **fields,
            )
        )

    async def progress(self, task, intern, status=ProgressStatus.not_started, progress=0, points_earned=0, **fields):
        return await self.add(
            TaskProgress(
                task_id=task.task_id,
                intern_id=intern.user_id,
                status=status,
                progress=progress,
                points_earned=points_earned,
                subtask_progress=[],
                time_logs=[],
                **fields,
            )
        )


@pytest_asyncio.fixture
async def seed(session_factory):
    return Seeder(session_factory)

"""Fixtures compartidas: BD SQLite en memoria, canales falsos y executor inline."""

from __future__ import annotations

from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError

from common.db import build_engine, configure, ensure_schema, get_db
from common.schema import user_device_tokens, users
from toollife_api.notifications.base import ChannelResult
from toollife_api.notifications.dispatcher import NotificationDispatcher
from toollife_api.notifications.gateway import NotificationGateway
from toollife_api.resilience import RetryConfig
from toollife_api.tool_life import tool_repository as tools_repo
from toollife_api.tool_life.locks import ToolLockRegistry
from toollife_api.tool_life.models import MasterTool
from toollife_api.tool_life.service import ToolLifeService


# =============================================================================
# FAKES
# =============================================================================

class InlineExecutor:
    """Ejecuta el envío en el mismo hilo (determinista en tests)."""

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, fn, *args, **kwargs) -> Future:
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait: bool = True) -> None:
        pass


class FakeEmailChannel:
    def __init__(self, success: bool = True, raises: Optional[Exception] = None) -> None:
        self.success = success
        self.raises = raises
        self.sent: List[Dict] = []

    @property
    def enabled(self) -> bool:
        return True

    def send_tool_life_alert(self, to_email, notification) -> ChannelResult:
        if self.raises is not None:
            raise self.raises
        self.sent.append({"to": to_email, "notification": notification})
        if self.success:
            return ChannelResult(success=True, delivered=1)
        return ChannelResult(success=False, error="HTTP 503")


class FakePushChannel:
    def __init__(self, success: bool = True, raises: Optional[Exception] = None) -> None:
        self.success = success
        self.raises = raises
        self.sent: List[Dict] = []

    @property
    def enabled(self) -> bool:
        return True

    def send_to_many(self, tokens, title, body, data) -> ChannelResult:
        if self.raises is not None:
            raise self.raises
        self.sent.append({"tokens": list(tokens), "title": title, "body": body, "data": data})
        if self.success:
            return ChannelResult(success=True, delivered=len(tokens))
        return ChannelResult(success=False, error="HTTP 500")


# =============================================================================
# BD
# =============================================================================

@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return configure(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def create_tool(
    db,
    tool_id: int = 1,
    threshold: float = 1000.0,
    supervisor_email: Optional[str] = "supervisor@plant.local",
    name: str = "Drill 8mm",
) -> MasterTool:
    tool = MasterTool(
        tool_id=tool_id,
        tool_name=name,
        tool_life_threshold=threshold,
        supervisor_email=supervisor_email,
    )
    tools_repo.insert_tool(db, tool, datetime.now(timezone.utc))
    db.commit()
    return tool


def create_supervisor(db, username: str = "sup1", tokens: tuple = ("token-a",), **overrides) -> int:
    values = {
        "name": "Shift Supervisor",
        "username": username,
        "role": "Supervisor",
        "is_active": True,
        "push_notifications_enabled": True,
    }
    values.update(overrides)
    user_id = db.execute(insert(users).values(**values).returning(users.c.id)).scalar_one()
    for i, token in enumerate(tokens):
        db.execute(
            insert(user_device_tokens).values(
                user_id=user_id, token=token, device_id=f"{username}-dev-{i}", device_type="android"
            )
        )
    db.commit()
    return int(user_id)


# =============================================================================
# NOTIFICACIONES / SERVICIO
# =============================================================================

@pytest.fixture
def fake_email() -> FakeEmailChannel:
    return FakeEmailChannel()


@pytest.fixture
def fake_push() -> FakePushChannel:
    return FakePushChannel()


@pytest.fixture
def gateway(fake_email, fake_push) -> NotificationGateway:
    return NotificationGateway(email=fake_email, push=fake_push)


@pytest.fixture
def executor() -> InlineExecutor:
    return InlineExecutor()


@pytest.fixture
def dispatcher(gateway, session_factory, executor) -> NotificationDispatcher:
    return NotificationDispatcher(gateway, session_factory, executor=executor)


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(max_attempts=3, base_delay=0.0, jitter=False, retryable_exceptions=(IntegrityError,))


@pytest.fixture
def service(db, dispatcher, retry_config) -> ToolLifeService:
    return ToolLifeService(db, dispatcher=dispatcher, locks=ToolLockRegistry(), retry_config=retry_config)


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def app(session_factory, dispatcher, monkeypatch):
    monkeypatch.setenv("TOOLLIFE_ENV_FILE", "")
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.delenv("TOOLLIFE_API_KEY", raising=False)

    from toollife_api.main import create_app

    app = create_app()
    app.state.dispatcher = dispatcher

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    return app


@pytest.fixture
def client(app) -> TestClient:
    # Sin context manager: no se ejecuta el lifespan (esquema y gateway ya listos).
    return TestClient(app)


@pytest.fixture
def make_tool(db):
    def _make(**kwargs) -> MasterTool:
        return create_tool(db, **kwargs)
    return _make


@pytest.fixture
def make_supervisor(db):
    def _make(**kwargs) -> int:
        return create_supervisor(db, **kwargs)
    return _make

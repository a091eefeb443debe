from typing import Any, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.database import Base
from app.models import User
from app.realtime import RealtimeHub


class FakeSocket:
    """Transport double that records every frame pushed to it"""

    def __init__(self, broken: bool = False) -> None:
        self.frames: list[dict] = []
        self.broken = broken

    async def send_json(self, data: Any) -> None:
        if self.broken:
            raise RuntimeError("socket is gone")
        self.frames.append(data)

    def events(self, name: Optional[str] = None) -> list[dict]:
        return [f for f in self.frames if name is None or f["event"] == name]

    def payloads(self, name: str) -> list[Any]:
        return [f["data"] for f in self.events(name)]

    def clear(self) -> None:
        self.frames.clear()


async def connect(hub: RealtimeHub, user_id: Optional[str] = None, broken: bool = False):
    socket = FakeSocket(broken=broken)
    connection = hub.connect(socket)
    if user_id is not None:
        await hub.dispatch(connection, "online", user_id)
    return connection, socket


async def send(hub: RealtimeHub, connection, chat_id: str, sender: str, text: str = "hi", **extra):
    await hub.dispatch(
        connection, "sendMessage", {"chatId": chat_id, "sender": sender, "text": text, **extra}
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def hub(session_factory) -> RealtimeHub:
    return RealtimeHub(session_factory=session_factory)


@pytest.fixture
def users(db) -> dict[str, User]:
    people = {
        "alice": User(id="alice", name="Alice", email="alice@example.com"),
        "bob": User(id="bob", name="Bob", email="bob@example.com"),
        "carol": User(id="carol", name="Carol", email="carol@example.com"),
    }
    db.add_all(people.values())
    db.commit()
    return people

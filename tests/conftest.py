"""
Pytest configuration for Folio tests

Provides an isolated SQLite database per test, test settings, and fakes for
the task queue, mailer and AI responder so no test touches SMTP or Gemini.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import pytest
from fastapi.testclient import TestClient

from folio.infrastructure.database import init_database, reset_pool
from folio.infrastructure.settings import Settings
from folio.llm.responder import DraftReply
from folio.observability.telemetry import reset_counters

SAMPLE_CONTENT: list[dict[str, Any]] = [
    {
        "type": "profile",
        "name": "Test Owner",
        "contacts": [
            {"type": "phone", "access": 0, "value": "Ask for my number"},
            {"type": "phone", "access": 2, "value": "+1 555 0100"},
            {"type": "location", "value": "Earth"},
        ],
    },
    {"type": "access", "levels": {"1": "friends", "2": "recruiters"}},
    {
        "type": "blogs",
        "blogs": [
            {"title": "Public post", "content": "Hello world", "blog": "https://example.com/1"},
            {"title": "Private post", "content": "Draft", "blog": "https://example.com/2", "access": 3},
        ],
    },
    {"type": "vip", "access": 5, "value": "VIP lounge"},
]


@dataclass
class SentEmail:
    to: str
    subject: str
    body_html: str
    attachments: list[Any] = field(default_factory=list)


class RecordingQueue:
    """Stands in for TaskQueue: records operations instead of running them."""

    def __init__(self) -> None:
        self.tasks: list[tuple[str, Any]] = []

    def enqueue(self, operation: Any, label: str = "task") -> None:
        self.tasks.append((label, operation))

    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self.tasks]

    @property
    def pending(self) -> int:
        return len(self.tasks)

    @property
    def busy(self) -> bool:
        return False

    @property
    def scheduled_retries(self) -> int:
        return 0

    async def run_all(self) -> None:
        tasks, self.tasks = self.tasks, []
        for _, operation in tasks:
            await operation()


class FakeMailer:
    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[SentEmail] = []
        self.error = error

    async def send_async(self, to, subject, body_html, attachments=()) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(SentEmail(to, subject, body_html, list(attachments)))

    def to(self, address: str) -> list[SentEmail]:
        return [email for email in self.sent if email.to == address]


class FakeResponder:
    def __init__(self, reply: DraftReply | None = None, error: Exception | None = None) -> None:
        self.reply = reply or DraftReply(subject="Thanks!", body="<p>Hi there</p>", attachResume=False)
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def generate(self, **kwargs: Any) -> DraftReply:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def _clear_counters():
    reset_counters()
    yield
    reset_counters()


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Fresh database file; the shared pool is pointed at it for the test."""
    path = tmp_path / "folio.db"
    monkeypatch.setenv("FOLIO_DB_PATH", str(path))
    reset_pool()
    init_database(path)
    yield path
    reset_pool()


@pytest.fixture
def settings(tmp_path, db_path) -> Settings:
    return Settings(
        env="test",
        base_url="http://testserver",
        db_path=db_path,
        content_path=tmp_path / "content.json",
        backup_dir=tmp_path / "backups",
        jwt_secret="test-user-secret-0123456789abcdef0123456789",
        admin_secret="test-admin-secret-0123456789abcdef012345678",
        trap_secret="test-trap-secret-0123456789abcdef0123456789",
        admin_password="test-admin-password",
        email_to="owner@example.com",
        admin_emails=("owner@example.com", "security@example.com"),
        owner_name="Test Owner",
        resume_path=tmp_path / "resume.pdf",
        about_path=tmp_path / "about_me.txt",
    )


@pytest.fixture
def content(settings) -> list[dict[str, Any]]:
    settings.content_path.write_text(json.dumps(SAMPLE_CONTENT), encoding="utf-8")
    return SAMPLE_CONTENT


@pytest.fixture
def queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def responder() -> FakeResponder:
    return FakeResponder()


@pytest.fixture
def app(settings, queue, mailer, responder):
    from folio.api.app import create_app

    return create_app(settings, task_queue=queue, mailer=mailer, responder=responder)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)

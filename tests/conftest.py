"""Shared fixtures: an app on in-memory SQLite and a scripted AI client."""

import pytest

from budget_tracker.actions import get_categories
from budget_tracker.db import ensure_household_user
from budget_tracker.errors import AIServiceError
from budget_tracker.webapp import create_app


class FakeAI:
    """Stands in for ``GeminiClient``: replies are queued, prompts recorded."""

    def __init__(self):
        self.replies = []
        self.prompts = []

    def queue(self, *replies):
        self.replies.extend(replies)

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise AIServiceError("no reply queued")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def app(fake_ai):
    return create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "SECRET_KEY": "test",
            "BUDGET_CONFIG_PATH": None,
            "LOG_LEVEL": "WARNING",
        },
        ai_client=fake_ai,
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def user(ctx):
    return ensure_household_user()


@pytest.fixture
def categories(ctx):
    return {c.name: c for c in get_categories()}


@pytest.fixture
def category_ids(app):
    with app.app_context():
        return {c.name: c.id for c in get_categories()}

"""Shared pytest fixtures.

Provides:
- ``user`` / ``other_user``: two accounts so ownership can be checked
- ``api_client``: DRF client authenticated as ``user``
- ``fake_client``: scripted stand-in for the Gemini client
- ``store`` / ``assistant``: services wired to the fake client
- ``use_fake_assistant``: routes the API views to ``assistant``
"""

from __future__ import annotations

import json

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from core.services.assistant import StudyAssistant
from core.services.conversations import ConversationStore


class FakeGenerationClient:
    """Returns queued responses in order; None once the queue is empty.

    Queued exceptions are raised instead of returned.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def generate(self, contents, json_output=False):
        self.calls.append({"contents": contents, "json_output": json_output})
        if not self.responses:
            return None
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_quiz_items(count: int = 5) -> list:
    return [
        {
            "question": f"Question {i}?",
            "options": [f"Option {i}{letter}" for letter in "ABCD"],
            "answer": f"Option {i}B",
        }
        for i in range(1, count + 1)
    ]


def make_quiz_json(count: int = 5) -> str:
    return json.dumps(make_quiz_items(count))


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username="student", email="student@example.com", password="secret-pass"
    )


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(
        username="intruder", email="intruder@example.com", password="secret-pass"
    )


@pytest.fixture
def api_client(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def fake_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore(summary_max_length=40)


@pytest.fixture
def assistant(store, fake_client) -> StudyAssistant:
    return StudyAssistant(store=store, client=fake_client, history_window=5)


@pytest.fixture
def use_fake_assistant(monkeypatch, assistant):
    monkeypatch.setattr("core.views.build_study_assistant", lambda: assistant)
    return assistant

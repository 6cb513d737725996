"""Shared test fixtures and helpers.

FakeTextService stands in for the text-understanding collaborator so the
extractor, workflow and session engine can be exercised without a model.
"""

import json

import pytest

from elicitor.config import UserScope
from elicitor.elicitation.extractor import FactExtractor
from elicitor.elicitation.models import FactsRecord
from elicitor.errors import UpstreamUnavailable
from elicitor.session import ElicitationEngine


class FakeTextService:
    """Scripted TextUnderstandingService.

    Each call pops the next reply. A reply that is an Exception instance is
    raised; a dict is returned as JSON; a string is returned as-is. The last
    reply repeats once the script runs out.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls: list[list[dict[str, str]]] = []

    def complete(self, messages):
        self.calls.append(messages)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


# ---------------------------------------------------------------------------
# Canned extraction payloads (camelCase, as a model would reply)
# ---------------------------------------------------------------------------

PARTIAL_REPLY = {
    "productType": "Browser extension",
    "coreGoal": "Save articles to read later offline",
    "targetUsers": "Myself",
    "userScope": "personal",
    "coreFeatures": [],
}

COMPLETE_REPLY = {
    "productType": "Browser extension",
    "coreGoal": "Save articles to read later offline",
    "targetUsers": "Myself",
    "userScope": "personal",
    "coreFeatures": ["Save page", "Offline reading", "Tag articles"],
    "useScenario": "Commuting without network",
    "userJourney": "Click icon, page saved, read later",
    "inputOutput": "Web page in, clean offline copy out",
    "painPoint": "Bookmarks break when pages go offline",
    "currentSolution": "Browser bookmarks",
    "technicalHints": ["Chrome extension"],
    "integrationNeeds": [],
    "performanceRequirements": "Save in under two seconds",
}


@pytest.fixture
def fake_service():
    """Factory for scripted services."""
    return FakeTextService


@pytest.fixture
def complete_reply():
    return dict(COMPLETE_REPLY)


@pytest.fixture
def partial_reply():
    return dict(PARTIAL_REPLY)


@pytest.fixture
def unavailable_service():
    return FakeTextService(UpstreamUnavailable("connection refused"))


@pytest.fixture
def complete_record():
    return FactsRecord.model_validate(COMPLETE_REPLY)


@pytest.fixture
def minimal_record():
    """goal=21 chars, users=5 chars, one feature, nothing else."""
    return FactsRecord(
        core_goal="Track my daily habits",
        target_users="Me me",
        core_features=["a"],
        user_scope=UserScope.PERSONAL,
    )


@pytest.fixture
def degraded_engine():
    """Engine whose extractor has no service, so every round degrades."""
    return ElicitationEngine(FactExtractor(service=None))


@pytest.fixture
def complete_engine():
    """Engine whose service always reports a complete record."""
    return ElicitationEngine(FactExtractor(FakeTextService(COMPLETE_REPLY)))

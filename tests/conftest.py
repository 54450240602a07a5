"""
Shared test fixtures - The sample memory set.

Five memories from different sources (editor, tracker, meetings, docs),
wired together through their connection lists. They double as the demo
data in seeds/sample_memories.json.
"""

import pytest
from unittest.mock import AsyncMock

from memlayer.config import Settings
from memlayer.models import Memory


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sample_records():
    """Store records as the memory store returns them."""
    return [
        {
            "id": 1,
            "title": "React useCallback Optimization",
            "content": "Used useCallback to prevent unnecessary re-renders in the user dashboard. "
                       "Wrapped the handleUserClick function and saw 40% performance improvement.",
            "source": "Cursor",
            "type": "code-snippet",
            "tags": ["react", "performance", "hooks"],
            "connections": [2, 5],
            "strength": 0.9,
            "project": "UserDashboard v2.1",
            "date": "2025-06-08",
        },
        {
            "id": 2,
            "title": "Auth0 Integration Epic",
            "content": "JIRA-2156: Implement Auth0 silent authentication with refresh token rotation.",
            "source": "Jira",
            "type": "ticket",
            "tags": ["auth0", "authentication", "jira"],
            "connections": [1, 3],
            "strength": 0.8,
            "project": "Authentication Service",
            "date": "2025-06-07",
        },
        {
            "id": 3,
            "title": "Sprint Planning - Architecture Discussion",
            "content": "Teams meeting notes: Decided to prioritize mobile responsiveness over new features.",
            "source": "Teams",
            "type": "meeting",
            "tags": ["sprint-planning", "mobile", "teams-meeting"],
            "connections": [2, 4],
            "strength": 0.7,
            "project": "Q2 Roadmap",
            "date": "2025-06-05",
        },
        {
            "id": 4,
            "title": "GitHub Copilot TypeScript Pattern",
            "content": "Perfect prompt for generating TypeScript interfaces: "
                       "'Generate TypeScript interfaces for [entity] with nested [properties]'",
            "source": "Copilot",
            "type": "tool-tip",
            "tags": ["copilot", "typescript", "interfaces"],
            "connections": [3, 5],
            "strength": 0.8,
            "project": "API Gateway",
            "date": "2025-06-04",
        },
        {
            "id": 5,
            "title": "Design System Architecture",
            "content": "SharePoint documentation: New design system using compound components pattern.",
            "source": "SharePoint",
            "type": "architecture",
            "tags": ["design-system", "components", "sharepoint"],
            "connections": [1, 4],
            "strength": 0.9,
            "project": "Design System v3",
            "date": "2025-06-03",
        },
    ]


@pytest.fixture
def sample_memories(sample_records):
    return [Memory.from_dict(record) for record in sample_records]


@pytest.fixture
def settings():
    """Fast timings so debounce tests finish quickly."""
    return Settings(
        suggestion_delay_ms=50,
        min_presentation_interval_ms=200,
        cache_ttl_seconds=300.0,
    )


@pytest.fixture
def mock_store(sample_records):
    """Async stand-in for MemoryStoreClient, healthy by default."""
    store = AsyncMock()
    store.list_memories.return_value = sample_records
    store.contextual_candidates.return_value = [
        dict(sample_records[1], relevance=0.6, reason="Mentions authentication"),
        dict(sample_records[0], relevance=0.4),
    ]
    store.generate_tags.return_value = ["javascript", "authentication"]
    store.get_stats.return_value = {"total": 5, "by_tag": {"react": 1}}
    store.create_memory.side_effect = lambda payload: dict(payload, id="mem_new")
    store.update_tags.return_value = {"ok": True}
    store.update_memory.return_value = {"ok": True}
    return store

"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.core import dependencies
from src.services.conversation import ConversationService
from src.services.help_request import HelpRequestService
from src.services.knowledge_base import KnowledgeBaseService
from src.services.orchestrator import DecisionOrchestrator
from src.services.responder import ResponderResult, ResponseKind
from src.services.store import Store


class FakeResponder:
    """Deterministic stand-in for the LLM responder; records every call."""

    def __init__(self, text: str = "Happy to help!", ok: bool = True) -> None:
        self.text = text
        self.ok = ok
        self.calls: list[tuple[ResponseKind, dict]] = []

    async def respond(self, kind: ResponseKind, context: dict) -> ResponderResult:
        self.calls.append((kind, context))
        if not self.ok:
            return ResponderResult(ok=False, reason="disabled")
        return ResponderResult(ok=True, text=self.text, confidence=1.0)


@pytest.fixture
def store(tmp_path: Path) -> Store:
    """Create a Store backed by a temp database."""
    return Store(db_path=str(tmp_path / "test.db"))


@pytest.fixture
def responder() -> FakeResponder:
    return FakeResponder()


@pytest.fixture
def kb(store: Store) -> KnowledgeBaseService:
    return KnowledgeBaseService(store, merge_threshold=0.90)


@pytest.fixture
def help_requests(store: Store, kb: KnowledgeBaseService, responder: FakeResponder) -> HelpRequestService:
    return HelpRequestService(store, kb, responder, timeout_minutes=15)


@pytest.fixture
def conversations(store: Store) -> ConversationService:
    return ConversationService(store)


@pytest.fixture
def orchestrator(
    conversations: ConversationService,
    kb: KnowledgeBaseService,
    help_requests: HelpRequestService,
    responder: FakeResponder,
) -> DecisionOrchestrator:
    return DecisionOrchestrator(conversations, kb, help_requests, responder, match_threshold=0.60)


@pytest.fixture
def client(
    store: Store,
    kb: KnowledgeBaseService,
    help_requests: HelpRequestService,
    conversations: ConversationService,
    orchestrator: DecisionOrchestrator,
):
    """TestClient wired to the temp-database services."""
    from src.main import app

    app.dependency_overrides[dependencies.get_store] = lambda: store
    app.dependency_overrides[dependencies.get_knowledge_base_service] = lambda: kb
    app.dependency_overrides[dependencies.get_help_request_service] = lambda: help_requests
    app.dependency_overrides[dependencies.get_conversation_service] = lambda: conversations
    app.dependency_overrides[dependencies.get_orchestrator] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

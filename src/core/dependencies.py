from src.services.store import Store
from src.services.knowledge_base import KnowledgeBaseService
from src.services.help_request import HelpRequestService
from src.services.conversation import ConversationService
from src.services.responder import GroundedResponder
from src.services.orchestrator import DecisionOrchestrator
from .config import settings

# Singleton instances (initialized once)
_store = None
_responder = None
_kb_service = None
_help_request_service = None
_conversation_service = None
_orchestrator = None


def get_store() -> Store:
    global _store
    if _store is None:
        _store = Store(db_path=settings.database_path, max_retries=settings.store_max_retries)
    return _store


def get_responder() -> GroundedResponder:
    global _responder
    if _responder is None:
        _responder = GroundedResponder(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout_seconds=settings.responder_timeout_seconds,
            enabled=settings.responder_enabled,
        )
    return _responder


def get_knowledge_base_service() -> KnowledgeBaseService:
    """
    Dependency for knowledge base service
    Returns singleton instance
    """
    global _kb_service
    if _kb_service is None:
        _kb_service = KnowledgeBaseService(get_store(), merge_threshold=settings.kb_merge_threshold)
    return _kb_service


def get_help_request_service() -> HelpRequestService:
    """
    Dependency for help request service
    Returns singleton instance
    """
    global _help_request_service
    if _help_request_service is None:
        _help_request_service = HelpRequestService(
            get_store(),
            get_knowledge_base_service(),
            get_responder(),
            timeout_minutes=settings.help_request_timeout_minutes,
        )
    return _help_request_service


def get_conversation_service() -> ConversationService:
    global _conversation_service
    if _conversation_service is None:
        _conversation_service = ConversationService(get_store())
    return _conversation_service


def get_orchestrator() -> DecisionOrchestrator:
    """
    Dependency for the decision orchestrator
    Returns singleton instance
    """
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = DecisionOrchestrator(
            get_conversation_service(),
            get_knowledge_base_service(),
            get_help_request_service(),
            get_responder(),
            match_threshold=settings.kb_match_threshold,
        )
    return _orchestrator


from .store import Store
from .knowledge_base import KnowledgeBaseService
from .help_request import HelpRequestService
from .conversation import ConversationService
from .responder import GroundedResponder, ResponseKind, DONT_KNOW
from .orchestrator import DecisionOrchestrator

__all__ = [
    "Store",
    "KnowledgeBaseService",
    "HelpRequestService",
    "ConversationService",
    "GroundedResponder",
    "ResponseKind",
    "DONT_KNOW",
    "DecisionOrchestrator",
]

from datetime import datetime
from typing import Optional, List
from src.core.errors import NotFound
from src.core.ids import new_id, utc_now
from src.core.logging import get_plain_logger
from src.models.schemas import Conversation, Message, Role
from src.services.store import Store, StoreSession

logger = get_plain_logger(__name__)

TITLE_LENGTH = 60

# Roles a customer may ever see; supervisor messages are internal audit
CUSTOMER_ROLES = {Role.USER, Role.ASSISTANT}


def append_message(
    tx: StoreSession,
    conversation_id: str,
    role: Role,
    content: str,
    help_request_id: Optional[str] = None,
) -> Message:
    row = tx.append("messages", {
        "id": new_id("msg"),
        "conversation_id": conversation_id,
        "role": role,
        "content": content,
        "created_at": utc_now(),
        "help_request_id": help_request_id,
    })
    return Message.model_validate(row)


class ConversationService:
    """Conversations and their message log"""

    def __init__(self, store: Store):
        self.store = store

    def create_conversation(self, title: Optional[str] = None) -> Conversation:
        row = self.store.append("conversations", {
            "id": new_id("conv"),
            "started_at": utc_now(),
            "ended_at": None,
            "title": (title or "").strip() or None,
        })
        logger.info(f"Started conversation {row['id']}")
        return Conversation.model_validate(row)

    def get_conversation(self, conversation_id: str) -> Conversation:
        row = self.store.find_by_id("conversations", conversation_id)
        if not row:
            raise NotFound(f"Conversation {conversation_id} not found")
        return Conversation.model_validate(row)

    def list_conversations(self) -> List[Conversation]:
        """Newest first"""
        conversations = [Conversation.model_validate(r) for r in self.store.list_table("conversations")]
        return sorted(conversations, key=lambda c: c.started_at, reverse=True)

    def set_title(self, conversation_id: str, title: Optional[str]) -> Conversation:
        row = self.store.update("conversations", conversation_id, {"title": (title or "").strip() or None})
        if not row:
            raise NotFound(f"Conversation {conversation_id} not found")
        return Conversation.model_validate(row)

    def end_conversation(self, conversation_id: str) -> Conversation:
        row = self.store.update("conversations", conversation_id, {"ended_at": utc_now()})
        if not row:
            raise NotFound(f"Conversation {conversation_id} not found")
        logger.info(f"Ended conversation {conversation_id}")
        return Conversation.model_validate(row)

    def record_utterance(self, conversation_id: str, utterance: str) -> Message:
        """Append a user message and seed the title if the conversation has none"""
        with self.store.transaction() as tx:
            message = append_message(tx, conversation_id, Role.USER, utterance)
            conversation = tx.find_by_id("conversations", conversation_id)
            if conversation and not conversation["title"]:
                tx.update("conversations", conversation_id, {"title": utterance[:TITLE_LENGTH]})
        return message

    def add_message(
        self,
        conversation_id: str,
        role: Role,
        content: str,
        help_request_id: Optional[str] = None,
    ) -> Message:
        with self.store.transaction() as tx:
            return append_message(tx, conversation_id, role, content, help_request_id)

    def get_transcript(
        self,
        conversation_id: str,
        since: Optional[datetime] = None,
    ) -> List[Message]:
        """Customer-facing message view: never includes supervisor messages"""
        rows = self.store.list_by_conversation(conversation_id, since)
        messages = [Message.model_validate(r) for r in rows]
        return [m for m in messages if m.role in CUSTOMER_ROLES]

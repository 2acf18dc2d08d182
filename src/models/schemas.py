from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from enum import Enum
from typing import Optional, List


class Role(str, Enum):
    """Who authored a message"""
    USER = "user"
    ASSISTANT = "assistant"
    SUPERVISOR = "supervisor"


class RequestStatus(str, Enum):
    """Help request lifecycle states"""
    PENDING = "pending"
    RESOLVED = "resolved"


class ReplySource(str, Enum):
    """Which pipeline branch produced a reply"""
    SMALL_TALK = "small_talk"
    KB_QNA = "kb_qna"
    NO_KB = "no_kb"


# Stored records

class KnowledgeEntry(BaseModel):
    id: str
    question: str
    answer: str
    created_at: datetime
    updated_at: datetime
    last_help_request_id: Optional[str] = None


class HelpRequest(BaseModel):
    id: str
    conversation_id: str
    question: str
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime
    updated_at: datetime
    timeout_at: datetime
    supervisor_id: Optional[str] = None
    answer: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.status == RequestStatus.RESOLVED


class Message(BaseModel):
    id: str
    conversation_id: str
    role: Role
    content: str
    created_at: datetime
    help_request_id: Optional[str] = None


class Conversation(BaseModel):
    id: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    title: Optional[str] = None


# Service results

class ScoredEntry(BaseModel):
    entry: KnowledgeEntry
    score: float


class LearnResult(BaseModel):
    entry_id: str
    created: bool
    score: float

    @property
    def updated(self) -> bool:
        return not self.created


class HandleResult(BaseModel):
    reply: str
    on_hold: bool
    source: ReplySource
    assistant_message: Message
    help_request: Optional[HelpRequest] = None


class ResolveResult(BaseModel):
    ok: bool = True
    reply: str
    help_request: HelpRequest
    assistant_message: Message
    learned: LearnResult


# Request bodies (camelCase on the wire)

class AnswerOrEscalateBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(default="conv_demo", alias="conversationId")
    utterance: Optional[str] = None


class ResolveRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: Optional[str] = None
    supervisor_id: str = Field(default="supervisor_demo", alias="supervisorId")


class ConversationCreate(BaseModel):
    title: Optional[str] = None


class KBEntryCreate(BaseModel):
    question: str
    answer: str


class SeedItem(BaseModel):
    question: str = ""
    answer: str = ""


class SeedKBBody(BaseModel):
    items: List[SeedItem] = []
    all: bool = False


class TokenRequest(BaseModel):
    roomName: Optional[str] = None
    participantName: Optional[str] = None

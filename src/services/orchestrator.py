import re
from typing import Optional
from starlette.concurrency import run_in_threadpool
from src.core.errors import InvalidInput
from src.core.logging import get_plain_logger
from src.models.schemas import HandleResult, ReplySource, ResolveResult, Role
from src.services.conversation import ConversationService
from src.services.help_request import HelpRequestService
from src.services.knowledge_base import KnowledgeBaseService
from src.services.responder import DONT_KNOW, GroundedResponder, ResponseKind

logger = get_plain_logger(__name__)

HOLD_NOTICE = (
    "Thanks for your question. Please hold for a moment while I check "
    "with a specialist. I'll be right back."
)
SMALL_TALK_FALLBACK = "Hi! How can I help you today?"
SMALL_TALK_MAX_LENGTH = 24

_GREETING = re.compile(r"\b(hi|hello|hey|good (morning|afternoon|evening)|namaste)\b")
_ACKNOWLEDGEMENT = re.compile(r"\b(thanks|thank you|ok|okay|great|cool|awesome)\b")
_INTRODUCTION = re.compile(r"^hi[, ]? this is\b")


def looks_like_small_talk(utterance: str) -> bool:
    """Greeting, acknowledgement, self-introduction, or just short"""
    text = (utterance or "").strip().lower()
    if not text:
        return False
    return bool(
        _GREETING.search(text)
        or _ACKNOWLEDGEMENT.search(text)
        or _INTRODUCTION.search(text)
        or len(text) <= SMALL_TALK_MAX_LENGTH
    )


class DecisionOrchestrator:
    """
    Entry point for customer utterances and supervisor resolutions

    handle() tries, in order: small talk, a KB answer, escalation to a
    human. It always produces a reply; responder failures fall back to
    fixed text. Only a missing utterance is an error.
    """

    def __init__(
        self,
        conversations: ConversationService,
        kb_service: KnowledgeBaseService,
        help_requests: HelpRequestService,
        responder: GroundedResponder,
        match_threshold: float = 0.60,
    ):
        self.conversations = conversations
        self.kb_service = kb_service
        self.help_requests = help_requests
        self.responder = responder
        self.match_threshold = match_threshold

    async def handle(self, conversation_id: str, utterance: Optional[str]) -> HandleResult:
        if not (utterance or "").strip():
            raise InvalidInput("Utterance is required")

        # Store calls are blocking; keep them off the event loop
        await run_in_threadpool(self.conversations.record_utterance, conversation_id, utterance)

        if looks_like_small_talk(utterance):
            return await self._small_talk(conversation_id, utterance)

        matches = await run_in_threadpool(
            self.kb_service.retrieve, utterance, 1, self.match_threshold
        )
        if matches:
            return await self._answer_from_kb(conversation_id, utterance, matches[0].entry.answer)

        return await run_in_threadpool(self._escalate, conversation_id, utterance)

    async def _small_talk(self, conversation_id: str, utterance: str) -> HandleResult:
        result = await self.responder.respond(ResponseKind.SMALL_TALK, {"message": utterance})
        reply = result.text.strip() if result.ok and result.text.strip() else SMALL_TALK_FALLBACK

        message = await run_in_threadpool(
            self.conversations.add_message, conversation_id, Role.ASSISTANT, reply
        )
        return HandleResult(
            reply=reply,
            on_hold=False,
            source=ReplySource.SMALL_TALK,
            assistant_message=message,
        )

    async def _answer_from_kb(self, conversation_id: str, utterance: str, kb_answer: str) -> HandleResult:
        result = await self.responder.respond(
            ResponseKind.CONVERSATIONAL,
            {"question": utterance, "kb_answer": kb_answer},
        )
        if result.ok and result.text.strip():
            reply = result.text.strip()
        else:
            reply = kb_answer or DONT_KNOW

        message = await run_in_threadpool(
            self.conversations.add_message, conversation_id, Role.ASSISTANT, reply
        )
        return HandleResult(
            reply=reply,
            on_hold=False,
            source=ReplySource.KB_QNA,
            assistant_message=message,
        )

    def _escalate(self, conversation_id: str, utterance: str) -> HandleResult:
        request = self.help_requests.create_request(conversation_id, utterance)
        # The sentinel goes in the log; the caller gets the hold notice
        message = self.conversations.add_message(
            conversation_id, Role.ASSISTANT, DONT_KNOW, help_request_id=request.id
        )
        logger.info(f"⏸️ {conversation_id} on hold pending {request.id}")
        return HandleResult(
            reply=HOLD_NOTICE,
            on_hold=True,
            source=ReplySource.NO_KB,
            assistant_message=message,
            help_request=request,
        )

    async def resolve(
        self,
        help_request_id: str,
        answer: Optional[str],
        supervisor_id: str = "supervisor_demo",
    ) -> ResolveResult:
        return await self.help_requests.resolve_request(help_request_id, answer, supervisor_id)

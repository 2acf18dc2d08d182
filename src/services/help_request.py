from typing import Optional, List
from datetime import timedelta
from starlette.concurrency import run_in_threadpool
from src.core.errors import AlreadyResolved, InvalidInput, NotFound
from src.core.ids import new_id, utc_now
from src.core.logging import get_plain_logger
from src.models.schemas import HelpRequest, Message, RequestStatus, ResolveResult, Role
from src.services.conversation import append_message
from src.services.knowledge_base import KnowledgeBaseService
from src.services.responder import GroundedResponder, ResponseKind
from src.services.store import Store

logger = get_plain_logger(__name__)

TABLE = "help_requests"


class HelpRequestService:
    """
    Manages help requests from AI to human supervisor

    pending -> resolved is the only transition. timeout_at is stored for
    every request but nothing acts on it.
    """

    def __init__(
        self,
        store: Store,
        kb_service: KnowledgeBaseService,
        responder: GroundedResponder,
        timeout_minutes: int = 15,
    ):
        self.store = store
        self.kb_service = kb_service
        self.responder = responder
        self.timeout_minutes = timeout_minutes

    def create_request(self, conversation_id: str, question: str) -> HelpRequest:
        """
        Open a new pending request for an utterance the KB could not answer

        Never deduped against earlier pending requests.
        """
        now = utc_now()
        row = self.store.append(TABLE, {
            "id": new_id("hr"),
            "conversation_id": conversation_id,
            "question": question,
            "status": RequestStatus.PENDING,
            "created_at": now,
            "updated_at": now,
            "timeout_at": now + timedelta(minutes=self.timeout_minutes),
        })
        request = HelpRequest.model_validate(row)
        self._notify_supervisor(request)
        return request

    def _notify_supervisor(self, request: HelpRequest):
        """
        Simulate notifying supervisor (console log)
        In production: send SMS, push notification, or webhook
        """
        message = f"""
        🔔 NEW HELP REQUEST {request.id}
        Conversation: {request.conversation_id}
        Question: {request.question}
        Time: {request.created_at.strftime('%I:%M %p')}

        → View in admin panel to respond
        """
        logger.warning(message)

    async def resolve_request(
        self,
        request_id: str,
        answer: Optional[str],
        supervisor_id: str = "supervisor_demo",
    ) -> ResolveResult:
        """
        Supervisor provides the answer to a pending help request

        The pending check, the status change, the supervisor audit message
        and the KB update commit together or not at all. The customer reply
        only runs after that commit, so it happens once per request.

        Raises:
            InvalidInput: answer is empty after trimming
            NotFound: no request with that id
            AlreadyResolved: request is no longer pending
        """
        answer = (answer or "").strip()
        if not answer:
            raise InvalidInput("Answer is required to resolve a help request")

        request, learned = await run_in_threadpool(
            self._commit_resolution, request_id, answer, supervisor_id
        )
        logger.info(f"✅ Resolved request {request_id}: {request.question[:50]}")

        reply, message = await self._follow_up_with_customer(request, answer)

        return ResolveResult(
            reply=reply,
            help_request=request,
            assistant_message=message,
            learned=learned,
        )

    def _commit_resolution(self, request_id: str, answer: str, supervisor_id: str):
        with self.store.transaction() as tx:
            row = tx.find_by_id(TABLE, request_id)
            if not row:
                raise NotFound(f"Help request {request_id} not found")
            if row["status"] == RequestStatus.RESOLVED.value:
                raise AlreadyResolved(f"Help request {request_id} is already resolved")

            row = tx.update(TABLE, request_id, {
                "status": RequestStatus.RESOLVED,
                "updated_at": utc_now(),
                "supervisor_id": supervisor_id,
                "answer": answer,
            })
            append_message(tx, row["conversation_id"], Role.SUPERVISOR, answer, request_id)
            learned = self.kb_service.learn_in(tx, request_id, row["question"], answer)
        return HelpRequest.model_validate(row), learned

    def _post_reply(self, conversation_id: str, reply: str, request_id: str) -> Message:
        with self.store.transaction() as tx:
            return append_message(tx, conversation_id, Role.ASSISTANT, reply, request_id)

    async def _follow_up_with_customer(self, request: HelpRequest, answer: str):
        """Phrase the supervisor's answer for the customer and post it"""
        rendered = await self.responder.respond(
            ResponseKind.CONVERSATIONAL,
            {"question": request.question, "kb_answer": answer},
        )
        reply = rendered.text.strip() if rendered.ok and rendered.text.strip() else answer

        message = await run_in_threadpool(
            self._post_reply, request.conversation_id, reply, request.id
        )
        logger.info(f"📱 Follow-up posted to {request.conversation_id} for {request.id}")
        return reply, message

    def get_request(self, request_id: str) -> HelpRequest:
        row = self.store.find_by_id(TABLE, request_id)
        if not row:
            raise NotFound(f"Help request {request_id} not found")
        return HelpRequest.model_validate(row)

    def get_all_requests(self, status: Optional[RequestStatus] = None) -> List[HelpRequest]:
        """All help requests, newest first, optionally filtered by status"""
        requests = [HelpRequest.model_validate(r) for r in self.store.list_table(TABLE)]
        if status is not None:
            requests = [r for r in requests if r.status == status]
        return sorted(requests, key=lambda r: r.created_at, reverse=True)

    def get_pending_requests(self) -> List[HelpRequest]:
        # "unresolved" is the same set: there is no third state
        return self.get_all_requests(RequestStatus.PENDING)

    def get_audit_trail(self, request_id: str) -> List[Message]:
        """Every message tied to a request, supervisor entries included (admin only)"""
        request = self.get_request(request_id)
        rows = self.store.list_by_conversation(request.conversation_id)
        return [
            m for m in (Message.model_validate(r) for r in rows)
            if m.help_request_id == request_id
        ]

    def get_stats(self) -> dict:
        """Get statistics for dashboard"""
        requests = self.get_all_requests()
        resolved = [r for r in requests if r.is_resolved]
        durations = [(r.updated_at - r.created_at).total_seconds() / 60 for r in resolved]
        return {
            "pending": len(requests) - len(resolved),
            "resolved": len(resolved),
            "total": len(requests),
            "avg_resolution_minutes": round(sum(durations) / len(durations), 2) if durations else 0,
        }

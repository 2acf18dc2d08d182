"""
Conversation Router
Customer-facing endpoints: the answer-or-escalate pipeline and transcripts
"""

from datetime import datetime
from fastapi import APIRouter, HTTPException, Depends
from typing import Optional

from src.core.errors import HelpdeskError, status_code_for
from src.core.logging import get_plain_logger
from src.models.schemas import AnswerOrEscalateBody, ConversationCreate
from src.services.conversation import ConversationService
from src.services.orchestrator import DecisionOrchestrator
from src.core.dependencies import get_conversation_service, get_orchestrator

logger = get_plain_logger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Conversations"]
)


@router.post("/answer-or-escalate")
async def answer_or_escalate(
    body: AnswerOrEscalateBody,
    orchestrator: DecisionOrchestrator = Depends(get_orchestrator)
):
    """Small talk, KB answer, or escalate to a supervisor and put the caller on hold"""
    try:
        result = await orchestrator.handle(body.conversation_id, body.utterance)
        response = {
            "reply": result.reply,
            "onHold": result.on_hold,
            "source": result.source.value,
            "assistantMsg": {
                "id": result.assistant_message.id,
                "created_at": result.assistant_message.created_at.isoformat(),
            },
        }
        if result.help_request:
            response["helpRequest"] = result.help_request.model_dump(mode="json")
        return response
    except HelpdeskError as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        logger.error(f"Error handling utterance for {body.conversation_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/conversations")
async def create_conversation(
    body: ConversationCreate,
    service: ConversationService = Depends(get_conversation_service)
):
    return service.create_conversation(body.title).model_dump(mode="json")


@router.get("/conversations")
async def list_conversations(service: ConversationService = Depends(get_conversation_service)):
    """All conversations, newest first"""
    return {"conversations": [c.model_dump(mode="json") for c in service.list_conversations()]}


@router.get("/conversations/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service)
):
    try:
        return service.get_conversation(conversation_id).model_dump(mode="json")
    except HelpdeskError as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))


@router.patch("/conversations/{conversation_id}")
async def update_conversation(
    conversation_id: str,
    body: ConversationCreate,
    service: ConversationService = Depends(get_conversation_service)
):
    try:
        if "title" in body.model_fields_set:
            return service.set_title(conversation_id, body.title).model_dump(mode="json")
        return service.get_conversation(conversation_id).model_dump(mode="json")
    except HelpdeskError as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))


@router.patch("/conversations/{conversation_id}/end")
async def end_conversation(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service)
):
    try:
        return service.end_conversation(conversation_id).model_dump(mode="json")
    except HelpdeskError as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))


@router.get("/conversations/{conversation_id}/messages")
async def poll_messages(
    conversation_id: str,
    since: Optional[datetime] = None,
    service: ConversationService = Depends(get_conversation_service)
):
    """Customer poll: messages newer than `since`, supervisor entries excluded"""
    messages = service.get_transcript(conversation_id, since)
    return {"messages": [m.model_dump(mode="json") for m in messages]}


@router.get("/transcripts/{conversation_id}")
async def get_transcript(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service)
):
    messages = service.get_transcript(conversation_id)
    return {
        "conversationId": conversation_id,
        "messages": [m.model_dump(mode="json") for m in messages]
    }

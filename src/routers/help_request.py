"""
Help Request Router
Handles supervisor-facing help request endpoints
"""

from fastapi import APIRouter, HTTPException, Depends
from typing import Optional

from src.core.errors import HelpdeskError, status_code_for
from src.core.logging import get_plain_logger
from src.models.schemas import RequestStatus, ResolveRequestBody
from src.services.help_request import HelpRequestService
from src.services.orchestrator import DecisionOrchestrator
from src.core.dependencies import get_help_request_service, get_orchestrator

logger = get_plain_logger(__name__)

router = APIRouter(
    prefix="/api/help-requests",
    tags=["Help Requests"]
)


@router.get("", response_model=dict)
async def get_all_requests(
    status: Optional[RequestStatus] = None,
    service: HelpRequestService = Depends(get_help_request_service)
):
    """Get all help requests, newest first, optionally filtered by status"""
    try:
        requests = service.get_all_requests(status)
        return {
            "success": True,
            "count": len(requests),
            "help_requests": [r.model_dump(mode="json") for r in requests]
        }
    except Exception as e:
        logger.error(f"Error fetching requests: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stats", response_model=dict)
async def get_stats(
    service: HelpRequestService = Depends(get_help_request_service)
):
    """Get statistics about help requests"""
    try:
        return {
            "success": True,
            "stats": service.get_stats()
        }
    except Exception as e:
        logger.error(f"Error fetching stats: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/pending", response_model=dict)
async def get_pending_requests(
    service: HelpRequestService = Depends(get_help_request_service)
):
    """Get all pending help requests"""
    try:
        requests = service.get_pending_requests()
        return {
            "success": True,
            "count": len(requests),
            "help_requests": [r.model_dump(mode="json") for r in requests]
        }
    except Exception as e:
        logger.error(f"Error fetching pending requests: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{request_id}", response_model=dict)
async def get_request_details(
    request_id: str,
    service: HelpRequestService = Depends(get_help_request_service)
):
    """Get details of specific help request, with its supervisor audit trail"""
    try:
        request = service.get_request(request_id)
        return {
            "success": True,
            "help_request": request.model_dump(mode="json"),
            "audit": [m.model_dump(mode="json") for m in service.get_audit_trail(request_id)]
        }
    except HelpdeskError as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        logger.error(f"Error fetching request {request_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{request_id}/resolve", response_model=dict)
async def resolve_request(
    request_id: str,
    body: ResolveRequestBody,
    orchestrator: DecisionOrchestrator = Depends(get_orchestrator)
):
    """
    Supervisor resolves a help request
    This triggers:
    1. Update request status to resolved (plus internal audit message)
    2. Learn the Q&A pair into the knowledge base
    3. Follow up with the customer in the conversation
    """
    try:
        result = await orchestrator.resolve(request_id, body.answer, body.supervisor_id)
        return {
            "ok": True,
            "reply": result.reply,
            "assistantMsg": {
                "id": result.assistant_message.id,
                "created_at": result.assistant_message.created_at.isoformat(),
            },
            "kb": result.learned.model_dump(),
        }
    except HelpdeskError as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        logger.error(f"Error resolving request {request_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

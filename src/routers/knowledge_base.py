
from fastapi import APIRouter, HTTPException, Depends

from src.core.config import settings
from src.core.errors import HelpdeskError, status_code_for
from src.core.logging import get_plain_logger
from src.models.schemas import KBEntryCreate
from src.services import KnowledgeBaseService
from src.core.dependencies import get_knowledge_base_service

logger = get_plain_logger(__name__)

router = APIRouter(
    prefix="/api/knowledge-base",
    tags=["Knowledge Base"]
)

SEARCH_LIMIT = 3


@router.get("")
async def get_knowledge_base(service: KnowledgeBaseService = Depends(get_knowledge_base_service)):
    """Get all learned answers"""
    try:
        entries = service.list_entries()
        return {
            "success": True,
            "count": len(entries),
            "entries": [e.model_dump(mode="json") for e in entries]
        }
    except Exception as e:
        logger.error(f"Error fetching knowledge base: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{entry_id}")
async def get_knowledge_base_entry(entry_id: str, service: KnowledgeBaseService = Depends(get_knowledge_base_service)):
    """Get a single learned answer"""
    try:
        entry = service.get_entry(entry_id)
        return {"success": True, "entry": entry.model_dump(mode="json")}
    except HelpdeskError as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        logger.error(f"Error fetching KB entry {entry_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("")
async def add_to_knowledge_base(entry: KBEntryCreate, service: KnowledgeBaseService = Depends(get_knowledge_base_service)):
    """Manually add entry to knowledge base (same merge policy as supervisor answers)"""
    try:
        result = service.learn(None, entry.question, entry.answer)
        return {
            "success": True,
            "message": "Entry added to knowledge base" if result.created else "Existing entry updated",
            "result": result.model_dump()
        }
    except HelpdeskError as e:
        raise HTTPException(status_code=status_code_for(e), detail=str(e))
    except Exception as e:
        logger.error(f"Error adding to knowledge base: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/search")
async def search_knowledge_base(query: str, service: KnowledgeBaseService = Depends(get_knowledge_base_service)):
    """Exploratory search, looser threshold than auto-answering"""
    try:
        matches = service.retrieve(query, k=SEARCH_LIMIT, min_score=settings.kb_search_threshold)
        return {
            "success": True,
            "found": bool(matches),
            "matches": [
                {**m.entry.model_dump(mode="json"), "score": m.score}
                for m in matches
            ]
        }
    except Exception as e:
        logger.error(f"Error searching knowledge base: {e}")
        raise HTTPException(status_code=500, detail=str(e))

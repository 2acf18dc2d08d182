
from fastapi import APIRouter, HTTPException, Depends

from src.core.logging import get_plain_logger
from src.models.schemas import SeedKBBody
from src.services import KnowledgeBaseService, Store
from src.core.dependencies import get_knowledge_base_service, get_store

logger = get_plain_logger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"]
)


@router.post("/reset")
async def reset_store(store: Store = Depends(get_store)):
    """Clear every table"""
    try:
        store.reset()
        return {"ok": True, "cleared": True}
    except Exception as e:
        logger.error(f"Error resetting store: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/seed-kb")
async def seed_knowledge_base(
    body: SeedKBBody,
    service: KnowledgeBaseService = Depends(get_knowledge_base_service)
):
    """Replace the KB with the given items (everything is wiped when `all` is set)"""
    try:
        count = service.seed(body.items, clear_all=body.all)
        return {"ok": True, "kb_count": count}
    except Exception as e:
        logger.error(f"Error seeding knowledge base: {e}")
        raise HTTPException(status_code=500, detail=str(e))

"""AI Routes - objective drafting for the resume form."""
from fastapi import APIRouter, HTTPException, status
from models import ObjectiveDraftRequest
from services.objective_writer import draft_objective
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ia", tags=["ai"])


@router.post("/objetivo")
async def generate_objective(request: ObjectiveDraftRequest):
    """Draft a professional objective. Nothing is stored."""
    try:
        objective = await draft_objective(request)
    except Exception as e:
        logger.error(f"Objective drafting failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error_code": "OBJECTIVE_GENERATION_FAILED",
                "message": "Erro ao gerar objetivo profissional com IA.",
            },
        )
    return {"success": True, "objetivo": objective}

"""Interaction (audit record) listing endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from gateway.application.interfaces import InteractionRepository
from gateway.application.schemas import InteractionResponse, InteractionSummaryResponse
from gateway.infrastructure.dependencies import get_interaction_repository

router = APIRouter(prefix="/interactions", tags=["Interactions"])


@router.get("", response_model=list[InteractionSummaryResponse])
async def list_interactions(
    agent_id: str | None = None,
    skip: int = 0,
    limit: int = 100,
    repository: InteractionRepository = Depends(get_interaction_repository),
) -> list[InteractionSummaryResponse]:
    """Retrieve a paginated list of interactions, newest first."""
    records = await repository.get_all(agent_id=agent_id, skip=skip, limit=limit)
    return [InteractionSummaryResponse.model_validate(r, from_attributes=True) for r in records]


@router.get("/{interaction_id}", response_model=InteractionResponse)
async def get_interaction(
    interaction_id: int,
    repository: InteractionRepository = Depends(get_interaction_repository),
) -> InteractionResponse:
    """Retrieve a single interaction including stored request and response bodies."""
    record = await repository.get_by_id(interaction_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Interaction with id '{interaction_id}' not found",
        )
    return InteractionResponse.model_validate(record, from_attributes=True)

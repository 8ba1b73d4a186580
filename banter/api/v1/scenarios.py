"""
Scenario endpoints - social settings, their characters, missions, and starting
a scenario conversation.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, status

from banter.ai.prompts import process_reply
from banter.api.deps import Catalog, RateLimitGuard, Store, SubjectId
from banter.kernel.errors import InvalidConversationConfig
from banter.kernel.models.conversation import ConversationKind, TurnRole
from banter.kernel.rate_limit import ACTION_CONVERSATION_START, RateLimitDecision
from banter.logging_config import get_logger
from banter.schemas.common import RateLimitInfo
from banter.schemas.conversation import (
    CharacterResponse,
    ConversationStartResponse,
    MissionResponse,
    ScenarioResponse,
    ScenarioStartRequest,
)

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=List[ScenarioResponse])
async def list_scenarios(catalog: Catalog):
    """All available scenarios."""
    return [
        ScenarioResponse(
            id=s.id,
            name=s.name,
            description=s.description,
            mood=s.mood,
            difficulty=s.difficulty,
            characters_present=list(s.characters_present),
        )
        for s in catalog.list_scenarios()
    ]


@router.get("/missions", response_model=List[MissionResponse])
async def list_missions(catalog: Catalog):
    """Optional objectives a scenario can be played with."""
    return [MissionResponse.from_mission(m) for m in catalog.list_missions()]


@router.get("/{scenario_id}/characters", response_model=List[CharacterResponse])
async def scenario_characters(scenario_id: str, catalog: Catalog):
    """Characters present in a scenario."""
    if catalog.get_scenario(scenario_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scenario not found")
    return [CharacterResponse.from_character(c) for c in catalog.scenario_characters(scenario_id)]


@router.post(
    "/{scenario_id}/start",
    response_model=ConversationStartResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_scenario(
    scenario_id: str,
    body: ScenarioStartRequest,
    subject_id: SubjectId,
    store: Store,
    catalog: Catalog,
    decision: Annotated[RateLimitDecision, Depends(RateLimitGuard(ACTION_CONVERSATION_START))],
):
    """
    Start a scenario conversation.

    With no character_id a character present in the scenario is picked at
    random. A mission id adds an objective that is tracked as the user talks.
    """
    scenario = catalog.get_scenario(scenario_id)
    if scenario is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scenario not found")

    if body.character_id and body.character_id not in scenario.characters_present:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid character for this scenario",
        )

    mission = None
    if body.mission:
        mission = catalog.get_mission(body.mission)
        if mission is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid mission")

    try:
        conversation_id = store.start(
            subject_id,
            ConversationKind.SCENARIO,
            {
                "scenario_id": scenario.id,
                "scenario": scenario,
                "character_id": body.character_id,
                "mission": mission,
            },
        )
    except InvalidConversationConfig as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    record = store.get(conversation_id)
    opening = catalog.scenario_opening(scenario, record.character.id)
    store.add_message(conversation_id, TurnRole.ASSISTANT, opening)
    processed = process_reply(opening)

    return ConversationStartResponse(
        conversation_id=conversation_id,
        kind=ConversationKind.SCENARIO.value,
        character=CharacterResponse.from_character(record.character),
        starter_message=processed.text,
        mood=processed.mood,
        mission=MissionResponse.from_mission(mission) if mission else None,
        rate_limit=RateLimitInfo(remaining=decision.remaining, limit=decision.limit),
    )

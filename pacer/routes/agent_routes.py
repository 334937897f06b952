"""
Tutor agent endpoints. The agent has no user session; it is authenticated by
the x-agent-api-key header and addresses progress by room name.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pacer.config import get_db
from pacer.schemas.agent_schemas import (
    AgentProgressRequest,
    AgentProgressResponse,
    AgentUpdateRequest,
    AgentUpdateResponse,
)
from pacer.services.progression_service import ProgressionService
from pacer.utils.auth import require_agent_key
from pacer.utils.clock import Clock, get_clock

agent_routes = APIRouter(dependencies=[Depends(require_agent_key)])


@agent_routes.post("/agent/progress", response_model=AgentProgressResponse)
async def agent_get_progress(
    req: AgentProgressRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AgentProgressResponse:
    snap = ProgressionService(db, clock).agent_snapshot(req.room_name)
    return AgentProgressResponse(
        exists=snap.exists,
        course_id=snap.room.course_id,
        module_number=snap.room.module_number,
        lesson_number=snap.room.lesson_number,
        teaching_state=snap.teaching_state,
        current_subtopic=snap.current_subtopic,
        subtopics=snap.subtopics,
        understanding_score=snap.understanding_score,
        teaching_context=snap.teaching_context if snap.exists else None,
        is_last_lesson_in_module=snap.is_last_lesson_in_module,
    )


@agent_routes.post("/agent/progress/update", response_model=AgentUpdateResponse)
async def agent_update_progress(
    req: AgentUpdateRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AgentUpdateResponse:
    updated = ProgressionService(db, clock).agent_update(
        req.room_name,
        teaching_state=req.teaching_state,
        current_subtopic=req.current_subtopic,
        understanding_confirmed=req.understanding_confirmed,
        lesson_complete=req.lesson_complete,
        understood_concept=req.understood_concept,
        struggling_area=req.struggling_area,
    )
    if not updated:
        return AgentUpdateResponse(message="Progress not found - please initialize first", success=False)
    return AgentUpdateResponse(message="Progress updated successfully", success=True)

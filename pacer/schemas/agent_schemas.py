"""
Tutor agent schemas. The agent identifies its session by room name:
course-{course_id}-module-{n}-lesson-{lesson_number}.
"""

from pydantic import BaseModel, Field
from typing import Optional

from pacer.models.progress import TeachingState


class AgentProgressRequest(BaseModel):
    room_name: str


class AgentProgressResponse(BaseModel):
    exists: bool
    course_id: str
    module_number: int
    lesson_number: str
    teaching_state: TeachingState
    current_subtopic: int
    subtopics: list[dict] = []
    understanding_score: float = 0.0
    teaching_context: Optional[dict] = None
    is_last_lesson_in_module: bool = False


class AgentUpdateRequest(BaseModel):
    room_name: str
    teaching_state: Optional[TeachingState] = None
    current_subtopic: Optional[int] = Field(default=None, ge=0)
    lesson_complete: bool = False
    understanding_confirmed: bool = False
    understood_concept: Optional[str] = None
    struggling_area: Optional[str] = None


class AgentUpdateResponse(BaseModel):
    message: str
    success: bool

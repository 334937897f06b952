"""
Learning progress request/response schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional

from pacer.models.progress import TeachingState


class SubtopicItem(BaseModel):
    index: int
    title: str
    key_points: list[str] = []
    is_completed: bool = False
    understanding_confirmed: bool = False
    completed_at: Optional[str] = None


class LessonProgressResponse(BaseModel):
    module_number: int
    lesson_number: str
    subtopics: list[dict]
    current_subtopic_index: int
    understanding_score: float
    status: str
    questions_asked: list[str]
    key_takeaways: list[str]
    time_spent_seconds: int
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class QuizResultResponse(BaseModel):
    module_number: int
    score: float
    passing_score: float
    passed: bool
    attempts: int
    questions: list[dict]
    areas_to_review: list[str]
    completed_at: Optional[str] = None


class TeachingContext(BaseModel):
    understood_concepts: list[str] = []
    struggling_areas: list[str] = []
    learning_preferences: list[str] = []
    analogies_used: list[str] = []
    last_topic_taught: Optional[str] = None


class ProgressResponse(BaseModel):
    id: int
    course_id: str
    current_module: int
    current_lesson: str
    current_subtopic: int
    teaching_state: TeachingState
    resume_state: Optional[TeachingState] = None
    teaching_context: TeachingContext
    lessons: list[LessonProgressResponse]
    quiz_results: list[QuizResultResponse]
    last_session_at: Optional[str] = None
    completed_at: Optional[str] = None


class UpdateTeachingStateRequest(BaseModel):
    state: TeachingState
    current_subtopic: Optional[int] = Field(default=None, ge=0)


class UpdateLessonProgressRequest(BaseModel):
    module_number: int
    lesson_number: str
    subtopics: Optional[list[SubtopicItem]] = None
    current_subtopic_index: Optional[int] = Field(default=None, ge=0)
    understanding_score: Optional[float] = Field(default=None, ge=0, le=100)
    questions_asked: Optional[list[str]] = None
    key_takeaways: Optional[list[str]] = None
    time_spent_seconds: Optional[int] = Field(default=None, ge=0)
    mark_completed: bool = False


class ConfirmSubtopicRequest(BaseModel):
    module_number: int
    lesson_number: str
    subtopic_index: int


class AdvanceResponse(BaseModel):
    message: str
    new_module: int
    new_lesson: str
    module_completed: bool
    course_completed: bool
    progress: ProgressResponse


class QuizQuestion(BaseModel):
    question: str
    user_answer: str
    correct_answer: str
    is_correct: bool
    explanation: Optional[str] = None


class SaveQuizRequest(BaseModel):
    module_number: int
    score: float = Field(ge=0, le=100)
    questions: list[QuizQuestion] = []


class SaveQuizResponse(BaseModel):
    message: str
    passed: bool
    score: float
    passing_score: float
    progress: ProgressResponse


class UpdateTeachingContextRequest(BaseModel):
    understood_concept: Optional[str] = None
    struggling_area: Optional[str] = None
    learning_preference: Optional[str] = None
    analogy_used: Optional[str] = None
    last_topic_taught: Optional[str] = None


class ProgressSummaryResponse(BaseModel):
    current_module: int
    current_lesson: str
    current_subtopic: int
    teaching_state: TeachingState
    lessons_completed: int
    total_lessons: int
    modules_completed: int
    total_modules: int
    average_understanding: float
    percent_complete: int
    quiz_results: list[QuizResultResponse]


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_streak_update: Optional[str] = None  # local calendar day, YYYY-MM-DD

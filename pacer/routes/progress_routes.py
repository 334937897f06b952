"""
Learning progress endpoints for the signed-in learner.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pacer.config import get_db
from pacer.models.models import User
from pacer.models.progress import LearningProgress, LessonStatus, ModuleQuizResult
from pacer.schemas.progress_schemas import (
    AdvanceResponse,
    ConfirmSubtopicRequest,
    LessonProgressResponse,
    ProgressResponse,
    ProgressSummaryResponse,
    QuizResultResponse,
    SaveQuizRequest,
    SaveQuizResponse,
    StreakResponse,
    TeachingContext,
    UpdateLessonProgressRequest,
    UpdateTeachingContextRequest,
    UpdateTeachingStateRequest,
)
from pacer.services.progression_service import LESSON_PATCH_FIELDS, ProgressionService, QuizOutcome
from pacer.services.streak_service import StreakService
from pacer.utils.auth import get_current_user
from pacer.utils.clock import Clock, get_clock
from pacer.utils.common import iso_format

progress_routes = APIRouter()

PASSING_SCORE = 70


def quiz_to_response(q: ModuleQuizResult) -> QuizResultResponse:
    return QuizResultResponse(
        module_number=q.module_number,
        score=q.score,
        passing_score=q.passing_score,
        passed=bool(q.passed),
        attempts=q.attempts or 0,
        questions=list(q.questions or []),
        areas_to_review=list(q.areas_to_review or []),
        completed_at=iso_format(q.completed_at),
    )


def progress_to_response(p: LearningProgress) -> ProgressResponse:
    return ProgressResponse(
        id=p.id,
        course_id=p.course_id,
        current_module=p.current_module,
        current_lesson=p.current_lesson,
        current_subtopic=p.current_subtopic,
        teaching_state=p.teaching_state,
        resume_state=p.resume_state,
        teaching_context=TeachingContext(**(p.teaching_context or {})),
        lessons=[
            LessonProgressResponse(
                module_number=lp.module_number,
                lesson_number=lp.lesson_number,
                subtopics=list(lp.subtopics or []),
                current_subtopic_index=lp.current_subtopic_index,
                understanding_score=lp.understanding_score,
                status=lp.status.value,
                questions_asked=list(lp.questions_asked or []),
                key_takeaways=list(lp.key_takeaways or []),
                time_spent_seconds=lp.time_spent_seconds,
                started_at=iso_format(lp.started_at),
                completed_at=iso_format(lp.completed_at),
            )
            for lp in p.lessons
        ],
        quiz_results=[quiz_to_response(q) for q in p.quizzes],
        last_session_at=iso_format(p.last_session_at),
        completed_at=iso_format(p.completed_at),
    )


@progress_routes.get("/progress/{course_id}", response_model=ProgressResponse)
async def get_progress(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ProgressResponse:
    """Get the learner's progress for a course, creating it at the first lesson if needed."""
    progress = ProgressionService(db, clock).get_or_create_progress(current_user.id, course_id)
    return progress_to_response(progress)


@progress_routes.post("/progress/{course_id}/teaching-state", response_model=ProgressResponse)
async def update_teaching_state(
    course_id: str,
    req: UpdateTeachingStateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ProgressResponse:
    progress = ProgressionService(db, clock).update_teaching_state(
        current_user.id, course_id, req.state, req.current_subtopic
    )
    return progress_to_response(progress)


@progress_routes.post("/progress/{course_id}/teaching-state/resume", response_model=ProgressResponse)
async def resume_teaching(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ProgressResponse:
    """Return from answering_question to the state that was interrupted."""
    progress = ProgressionService(db, clock).resume_after_question(current_user.id, course_id)
    return progress_to_response(progress)


@progress_routes.post("/progress/{course_id}/lessons", response_model=ProgressResponse)
async def update_lesson_progress(
    course_id: str,
    req: UpdateLessonProgressRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ProgressResponse:
    patch = {
        name: getattr(req, name)
        for name in LESSON_PATCH_FIELDS
        if name in req.model_fields_set and getattr(req, name) is not None
    }
    if "subtopics" in patch:
        patch["subtopics"] = [s.model_dump() for s in req.subtopics]
    if req.mark_completed:
        patch["status"] = LessonStatus.COMPLETED
    progress = ProgressionService(db, clock).upsert_lesson_progress(
        current_user.id, course_id, req.module_number, req.lesson_number, patch
    )
    return progress_to_response(progress)


@progress_routes.post("/progress/{course_id}/subtopics/confirm", response_model=ProgressResponse)
async def confirm_subtopic(
    course_id: str,
    req: ConfirmSubtopicRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ProgressResponse:
    progress = ProgressionService(db, clock).confirm_subtopic_understanding(
        current_user.id, course_id, req.module_number, req.lesson_number, req.subtopic_index
    )
    return progress_to_response(progress)


@progress_routes.post("/progress/{course_id}/advance", response_model=AdvanceResponse)
async def advance(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AdvanceResponse:
    result = ProgressionService(db, clock).advance_to_next_lesson(current_user.id, course_id)
    if result.course_completed:
        message = "Course completed!"
    elif result.module_completed:
        message = "Module completed! Quiz time."
    else:
        message = "Advanced to next lesson"
    return AdvanceResponse(
        message=message,
        new_module=result.new_module,
        new_lesson=result.new_lesson,
        module_completed=result.module_completed,
        course_completed=result.course_completed,
        progress=progress_to_response(result.progress),
    )


@progress_routes.post("/progress/{course_id}/quiz", response_model=SaveQuizResponse)
async def save_quiz(
    course_id: str,
    req: SaveQuizRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> SaveQuizResponse:
    passed = req.score >= PASSING_SCORE
    outcome = QuizOutcome(
        module_number=req.module_number,
        score=req.score,
        passing_score=PASSING_SCORE,
        passed=passed,
        questions=[q.model_dump() for q in req.questions],
        areas_to_review=[q.question for q in req.questions if not q.is_correct],
    )
    progress = ProgressionService(db, clock).save_quiz_result(current_user.id, course_id, outcome)
    return SaveQuizResponse(
        message="Quiz passed! Great job!" if passed else "Quiz completed. Consider reviewing the material.",
        passed=passed,
        score=req.score,
        passing_score=PASSING_SCORE,
        progress=progress_to_response(progress),
    )


@progress_routes.post("/progress/{course_id}/teaching-context", response_model=ProgressResponse)
async def update_teaching_context(
    course_id: str,
    req: UpdateTeachingContextRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ProgressResponse:
    progress = ProgressionService(db, clock).update_teaching_context(
        current_user.id,
        course_id,
        understood_concept=req.understood_concept,
        struggling_area=req.struggling_area,
        learning_preference=req.learning_preference,
        analogy_used=req.analogy_used,
        last_topic_taught=req.last_topic_taught,
    )
    return progress_to_response(progress)


@progress_routes.get("/progress/{course_id}/summary", response_model=ProgressSummaryResponse)
async def get_summary(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ProgressSummaryResponse:
    summary = ProgressionService(db, clock).get_progress_summary(current_user.id, course_id)
    return ProgressSummaryResponse(
        current_module=summary.current_module,
        current_lesson=summary.current_lesson,
        current_subtopic=summary.current_subtopic,
        teaching_state=summary.teaching_state,
        lessons_completed=summary.lessons_completed,
        total_lessons=summary.total_lessons,
        modules_completed=summary.modules_completed,
        total_modules=summary.total_modules,
        average_understanding=summary.average_understanding,
        percent_complete=summary.percent_complete,
        quiz_results=[quiz_to_response(q) for q in summary.quiz_results],
    )


@progress_routes.get("/streak", response_model=StreakResponse)
async def get_streak(
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
) -> StreakResponse:
    view = StreakService(clock).view(current_user)
    return StreakResponse(
        current_streak=view.current_streak,
        longest_streak=view.longest_streak,
        last_streak_update=view.last_streak_update.isoformat() if view.last_streak_update else None,
    )

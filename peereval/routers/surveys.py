from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from peereval.core.security.auth import ensure_acting_as, ensure_self_or_project_owner, get_current_user
from peereval.db.init_db import SchemaCapabilities, get_capabilities
from peereval.db.session import get_db
from peereval.models.survey import SurveyAssignment
from peereval.models.user import User
from peereval.schemas.survey import SurveyAssignRequest, SurveySubmitRequest
from peereval.services import feedback as feedback_service
from peereval.services import surveys as survey_service
from peereval.services.completion import completion_status
from peereval.services.pdf_report import render_feedback_report
from peereval.utils.helpers import sanitize_filename

router = APIRouter(prefix="/surveys", tags=["surveys"])


def _ensure_project_owner(assignment: SurveyAssignment, user: User) -> None:
    if assignment.project.instructor_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")


@router.post("/assign", status_code=status.HTTP_201_CREATED)
def assign_survey(
    request: SurveyAssignRequest,
    current_user: User = Depends(get_current_user),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    db: Session = Depends(get_db)
):
    ensure_acting_as(current_user, request.creator_id)
    result = survey_service.assign_survey(
        db,
        project_id=request.project_id,
        creator_id=request.creator_id,
        title=request.title,
        description=request.description,
        deadline=request.deadline,
        criteria=[c.model_dump() for c in request.criteria],
        criteria_enabled=capabilities.survey_criteria,
    )
    return {"success": True, **result}


@router.post("/submit")
def submit_responses(
    request: SurveySubmitRequest,
    current_user: User = Depends(get_current_user),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    db: Session = Depends(get_db)
):
    ensure_acting_as(current_user, request.respondent_id)
    answers = {
        target_id: {criterion_id: answer.model_dump() for criterion_id, answer in answer_map.items()}
        for target_id, answer_map in request.answers.items()
    }
    survey_service.submit_response(
        db,
        assignment_id=request.assignment_id,
        respondent_id=request.respondent_id,
        project_id=request.project_id,
        answers=answers,
        criteria_enabled=capabilities.survey_criteria,
    )
    return {"success": True}


@router.get("/{assignment_id}/completion-status")
def get_completion_status(
    assignment_id: int,
    student_id: int = Query(..., alias="studentId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    assignment = survey_service.get_assignment(db, assignment_id)
    ensure_self_or_project_owner(current_user, student_id, assignment.project)
    return {"success": True, **completion_status(db, assignment_id, student_id)}


@router.get("/{assignment_id}/my-feedback")
def get_my_feedback(
    assignment_id: int,
    target_student_id: int = Query(..., alias="targetStudentId"),
    current_user: User = Depends(get_current_user),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    db: Session = Depends(get_db)
):
    survey_service.get_assignment(db, assignment_id)
    ensure_acting_as(current_user, target_student_id)
    result = feedback_service.my_feedback(db, assignment_id, target_student_id, capabilities.survey_criteria)
    return {"success": True, **result}


@router.get("/{assignment_id}/results")
def get_results(
    assignment_id: int,
    current_user: User = Depends(get_current_user),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    db: Session = Depends(get_db)
):
    assignment = survey_service.get_assignment(db, assignment_id)
    _ensure_project_owner(assignment, current_user)
    result = feedback_service.results_for_instructor(db, assignment_id, capabilities.survey_criteria)
    return {"success": True, **result}


@router.get("/{assignment_id}/who-rated-me")
def get_who_rated_me(
    assignment_id: int,
    target_student_id: int = Query(..., alias="targetStudentId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ensure_acting_as(current_user, target_student_id)
    return {
        "success": True,
        "respondents": feedback_service.who_rated_me(db, assignment_id, target_student_id),
    }


@router.get("/{assignment_id}/my-status")
def get_my_status(
    assignment_id: int,
    respondent_id: int = Query(..., alias="respondentId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ensure_acting_as(current_user, respondent_id)
    return {"success": True, "submitted": survey_service.submission_status(db, assignment_id, respondent_id)}


@router.get("/{assignment_id}/responses")
def get_responses(
    assignment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    assignment = survey_service.get_assignment(db, assignment_id)
    _ensure_project_owner(assignment, current_user)
    return {"success": True, "responses": survey_service.list_responses(db, assignment_id)}


@router.get("/{assignment_id}/download-pdf")
async def download_pdf(
    assignment_id: int,
    student_id: int = Query(..., alias="studentId"),
    current_user: User = Depends(get_current_user),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    db: Session = Depends(get_db)
):
    assignment = survey_service.get_assignment(db, assignment_id)
    ensure_acting_as(current_user, student_id)

    if not completion_status(db, assignment_id, student_id)["allSubmitted"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Survey is not fully completed by all team members yet"
        )

    report = feedback_service.feedback_report_data(db, assignment_id, student_id, capabilities.survey_criteria)
    survey = assignment.survey
    student_name = current_user.name or current_user.email
    pdf_bytes = await run_in_threadpool(
        render_feedback_report,
        project_title=assignment.project.title,
        survey_title=survey.title,
        survey_description=survey.description,
        deadline=assignment.deadline,
        student_name=student_name,
        criteria=report["criteria"],
        feedback_by_criterion=report["feedbackByCriterion"],
        averages=report["averages"],
        total_responses=report["totalResponses"],
    )

    filename = sanitize_filename(f"feedback-report-{survey.title}-{student_name}.pdf")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

"""Survey lifecycle: assigning surveys to projects and collecting peer responses."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from peereval.core.exceptions import BusinessRuleError, ForbiddenError, NotFoundError, ValidationError
from peereval.models.project import Project
from peereval.models.survey import Survey, SurveyAssignment, SurveyCriterion, SurveyResponse
from peereval.services.teams import find_student_team, team_member_ids
from peereval.utils.helpers import as_utc, format_datetime, get_utc_now

logger = logging.getLogger(__name__)

DEFAULT_MIN_RATING = 1
DEFAULT_MAX_RATING = 5

# Dialects with a native INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def get_assignment(db: Session, assignment_id: int, project_id: Optional[int] = None) -> SurveyAssignment:
    query = db.query(SurveyAssignment).filter(SurveyAssignment.id == assignment_id)
    if project_id is not None:
        query = query.filter(SurveyAssignment.project_id == project_id)
    assignment = query.first()
    if not assignment:
        raise NotFoundError("Assignment not found")
    return assignment


def load_criteria(db: Session, survey_id: int, criteria_enabled: bool) -> List[SurveyCriterion]:
    if not criteria_enabled:
        return []
    return (
        db.query(SurveyCriterion)
        .filter(SurveyCriterion.survey_id == survey_id)
        .order_by(SurveyCriterion.order.asc(), SurveyCriterion.id.asc())
        .all()
    )


def serialize_criterion(criterion: SurveyCriterion) -> dict:
    return {
        "id": criterion.id,
        "surveyId": criterion.survey_id,
        "label": criterion.label,
        "minRating": criterion.min_rating,
        "maxRating": criterion.max_rating,
        "order": criterion.order,
    }


def serialize_survey(survey: Survey, criteria: List[SurveyCriterion]) -> dict:
    return {
        "id": survey.id,
        "title": survey.title,
        "description": survey.description,
        "creatorId": survey.creator_id,
        "createdAt": format_datetime(survey.created_at),
        "criteria": [serialize_criterion(c) for c in criteria],
    }


def serialize_assignment(assignment: SurveyAssignment, survey_payload: Optional[dict] = None) -> dict:
    payload = {
        "id": assignment.id,
        "projectId": assignment.project_id,
        "surveyId": assignment.survey_id,
        "deadline": format_datetime(assignment.deadline),
        "status": assignment.status,
        "createdAt": format_datetime(assignment.created_at),
    }
    if survey_payload is not None:
        payload["survey"] = survey_payload
    return payload


def assign_survey(
    db: Session,
    project_id: int,
    creator_id: int,
    title: str,
    deadline: datetime,
    description: Optional[str] = None,
    criteria: Optional[List[dict]] = None,
    criteria_enabled: bool = True,
) -> dict:
    """
    Create a survey with its criteria and bind it to a project with a deadline.

    When the criteria capability is off the survey and assignment are still
    created, just without structured criteria.

    Returns:
        {"survey": ..., "assignment": ...}
    """
    project = db.query(Project).filter(
        Project.id == project_id,
        Project.instructor_id == creator_id,
    ).first()
    if not project:
        raise ForbiddenError("Project not found or not owned by instructor")

    scales = []
    for item in criteria or []:
        min_rating = DEFAULT_MIN_RATING if item.get("min_rating") is None else item["min_rating"]
        max_rating = DEFAULT_MAX_RATING if item.get("max_rating") is None else item["max_rating"]
        if min_rating > max_rating:
            raise ValidationError(f"Criterion '{item['label']}' has minRating greater than maxRating")
        scales.append((item["label"], min_rating, max_rating))

    try:
        survey = Survey(title=title, description=description, creator_id=creator_id)
        db.add(survey)
        db.flush()

        if criteria_enabled:
            for index, (label, min_rating, max_rating) in enumerate(scales):
                db.add(SurveyCriterion(
                    survey_id=survey.id,
                    label=label,
                    min_rating=min_rating,
                    max_rating=max_rating,
                    order=index + 1,
                ))
        elif scales:
            logger.warning(
                f"Survey criteria storage unavailable; dropping {len(scales)} criteria for survey {survey.id}"
            )

        assignment = SurveyAssignment(
            project_id=project_id,
            survey_id=survey.id,
            deadline=as_utc(deadline),
        )
        db.add(assignment)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(survey)
    db.refresh(assignment)
    survey_payload = serialize_survey(survey, load_criteria(db, survey.id, criteria_enabled))
    logger.info(f"Assigned survey {survey.id} to project {project_id} as assignment {assignment.id}")
    return {
        "survey": survey_payload,
        "assignment": serialize_assignment(assignment, survey_payload),
    }


def _validate_answers(answer_map: Dict[str, dict], criteria: List[SurveyCriterion]) -> None:
    if not criteria:
        return
    by_id = {str(c.id): c for c in criteria}
    for criterion_id, answer in answer_map.items():
        criterion = by_id.get(str(criterion_id))
        if criterion is None:
            raise ValidationError(f"Unknown criterion {criterion_id}")
        rating = answer.get("rating")
        if rating is None:
            raise ValidationError(f"Rating is required for '{criterion.label}'")
        if not criterion.min_rating <= rating <= criterion.max_rating:
            raise ValidationError(
                f"Rating for '{criterion.label}' must be between "
                f"{criterion.min_rating} and {criterion.max_rating}"
            )


def _upsert_response(db: Session, values: dict) -> None:
    insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
    if insert is not None:
        stmt = insert(SurveyResponse).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["assignment_id", "respondent_id", "target_student_id"],
            set_={
                "answers": stmt.excluded.answers,
                "submitted_at": stmt.excluded.submitted_at,
            },
        )
        db.execute(stmt)
        return

    query = db.query(SurveyResponse).filter(
        SurveyResponse.assignment_id == values["assignment_id"],
        SurveyResponse.respondent_id == values["respondent_id"],
        SurveyResponse.target_student_id == values["target_student_id"],
    )
    existing = query.first()
    if existing is None:
        try:
            with db.begin_nested():
                db.add(SurveyResponse(**values))
            return
        except IntegrityError:
            # Another request inserted the same triple first; fall through to update it
            existing = query.one()
    existing.answers = values["answers"]
    existing.submitted_at = values["submitted_at"]


def submit_response(
    db: Session,
    assignment_id: int,
    respondent_id: int,
    project_id: int,
    answers: Dict[int, Dict[str, dict]],
    criteria_enabled: bool = True,
) -> None:
    """
    Store the respondent's answers about each teammate named in ``answers``.

    Re-submitting for the same respondent and target overwrites the earlier
    answers. Teammates left out of ``answers`` are untouched, so a team can be
    rated over several calls.

    Args:
        answers: target student id -> criterion id -> {"text", "rating"}
    """
    assignment = get_assignment(db, assignment_id, project_id)

    if get_utc_now() > as_utc(assignment.deadline):
        raise BusinessRuleError("Deadline has passed")

    team = find_student_team(db, project_id, respondent_id)
    if team is None:
        raise BusinessRuleError("Respondent not part of a team for this project")

    members = set(team_member_ids(team))
    if any(target_id not in members for target_id in answers):
        raise BusinessRuleError("Targets must be teammates")

    criteria = load_criteria(db, assignment.survey_id, criteria_enabled)
    for answer_map in answers.values():
        _validate_answers(answer_map, criteria)

    submitted_at = get_utc_now()
    try:
        for target_id, answer_map in answers.items():
            _upsert_response(db, {
                "assignment_id": assignment_id,
                "respondent_id": respondent_id,
                "target_student_id": target_id,
                "answers": {str(k): v for k, v in answer_map.items()},
                "submitted_at": submitted_at,
            })
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Stored {len(answers)} responses from student {respondent_id} for assignment {assignment_id}"
    )


def submission_status(db: Session, assignment_id: int, respondent_id: int) -> bool:
    count = db.query(SurveyResponse).filter(
        SurveyResponse.assignment_id == assignment_id,
        SurveyResponse.respondent_id == respondent_id,
    ).count()
    return count > 0


def list_project_assignments(db: Session, project_id: int) -> List[dict]:
    assignments = (
        db.query(SurveyAssignment)
        .filter(SurveyAssignment.project_id == project_id)
        .order_by(SurveyAssignment.created_at.desc(), SurveyAssignment.id.desc())
        .all()
    )
    return [
        serialize_assignment(a, {
            "id": a.survey.id,
            "title": a.survey.title,
            "description": a.survey.description,
            "creatorId": a.survey.creator_id,
        })
        for a in assignments
    ]


def _person(user) -> dict:
    return {"id": user.id, "name": user.name, "email": user.email}


def list_responses(db: Session, assignment_id: int) -> List[dict]:
    responses = (
        db.query(SurveyResponse)
        .filter(SurveyResponse.assignment_id == assignment_id)
        .order_by(SurveyResponse.submitted_at.desc(), SurveyResponse.id.desc())
        .all()
    )
    return [
        {
            "id": r.id,
            "assignmentId": r.assignment_id,
            "respondentId": r.respondent_id,
            "targetStudentId": r.target_student_id,
            "answers": r.answers,
            "submittedAt": format_datetime(r.submitted_at),
            "respondent": _person(r.respondent),
            "targetStudent": _person(r.target_student),
        }
        for r in responses
    ]

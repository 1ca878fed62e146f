"""Feedback aggregation for peer-survey assignments.

Students only ever see anonymized feedback: within each criterion the items
are shuffled independently and relabelled "Peer 1", "Peer 2", ... so a
label cannot be followed across criteria back to one respondent.
Instructors get the raw, attributed view.
"""

import random
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from peereval.models.survey import SurveyCriterion, SurveyResponse
from peereval.services.completion import aggregate_completion_for_project
from peereval.services.surveys import get_assignment, load_criteria, serialize_criterion
from peereval.utils.helpers import format_datetime, round_half_up


def _responses_about(db: Session, assignment_id: int, target_student_id: int) -> List[SurveyResponse]:
    return (
        db.query(SurveyResponse)
        .filter(
            SurveyResponse.assignment_id == assignment_id,
            SurveyResponse.target_student_id == target_student_id,
        )
        .order_by(SurveyResponse.submitted_at.asc(), SurveyResponse.id.asc())
        .all()
    )


def group_by_criterion(responses: List[SurveyResponse], criteria: List[SurveyCriterion]) -> Dict[str, List[dict]]:
    """
    Explode each response's answers into one item per criterion.

    Every criterion gets a bucket even when nobody answered it; answers for
    criteria that are not part of the survey are dropped.
    """
    buckets: Dict[str, List[dict]] = {str(c.id): [] for c in criteria}
    for response in responses:
        for criterion_id, answer in (response.answers or {}).items():
            bucket = buckets.get(str(criterion_id))
            if bucket is None:
                continue
            bucket.append({
                "respondent": {
                    "id": response.respondent.id,
                    "name": response.respondent.name,
                    "email": response.respondent.email,
                },
                "text": answer.get("text") or "",
                "rating": answer.get("rating") or 0,
            })
    return buckets


def anonymize_feedback(buckets: Dict[str, List[dict]], rng: Optional[random.Random] = None) -> Dict[str, List[dict]]:
    """Shuffle each bucket on its own and replace identities with Peer labels."""
    rng = rng or random.SystemRandom()
    anonymized = {}
    for criterion_id, items in buckets.items():
        shuffled = list(items)
        rng.shuffle(shuffled)
        anonymized[criterion_id] = [
            {
                "anonymousId": f"Peer {index}",
                "text": item["text"],
                "rating": item["rating"],
            }
            for index, item in enumerate(shuffled, start=1)
        ]
    return anonymized


def average_rating(ratings: List[int]) -> float:
    if not ratings:
        return 0
    return round_half_up(sum(ratings) / len(ratings), 2)


def my_feedback(db: Session, assignment_id: int, target_student_id: int, criteria_enabled: bool = True) -> dict:
    assignment = get_assignment(db, assignment_id)
    criteria = load_criteria(db, assignment.survey_id, criteria_enabled)
    responses = _responses_about(db, assignment_id, target_student_id)

    return {
        "feedbackByCriterion": anonymize_feedback(group_by_criterion(responses, criteria)),
        "criteria": [serialize_criterion(c) for c in criteria],
        "totalResponses": len(responses),
    }


def feedback_report_data(db: Session, assignment_id: int, target_student_id: int, criteria_enabled: bool = True) -> dict:
    """Anonymized feedback plus per-criterion averages, as rendered in the PDF report."""
    assignment = get_assignment(db, assignment_id)
    criteria = load_criteria(db, assignment.survey_id, criteria_enabled)
    responses = _responses_about(db, assignment_id, target_student_id)
    anonymized = anonymize_feedback(group_by_criterion(responses, criteria))

    return {
        "assignment": assignment,
        "criteria": criteria,
        "feedbackByCriterion": anonymized,
        "averages": {
            criterion_id: average_rating([item["rating"] for item in items])
            for criterion_id, items in anonymized.items()
        },
        "totalResponses": len(responses),
    }


def _display_name(user) -> str:
    return user.name or user.email


def results_for_instructor(db: Session, assignment_id: int, criteria_enabled: bool = True) -> dict:
    assignment = get_assignment(db, assignment_id)
    criteria = load_criteria(db, assignment.survey_id, criteria_enabled)
    responses = (
        db.query(SurveyResponse)
        .filter(SurveyResponse.assignment_id == assignment_id)
        .order_by(SurveyResponse.submitted_at.asc(), SurveyResponse.id.asc())
        .all()
    )

    aggregated = {
        str(c.id): {
            "criterionId": c.id,
            "criterionLabel": c.label,
            "averageRating": 0,
            "totalResponses": 0,
            "ratings": [],
            "responses": [],
        }
        for c in criteria
    }
    for response in responses:
        for criterion_id, answer in (response.answers or {}).items():
            result = aggregated.get(str(criterion_id))
            if result is None:
                continue
            rating = answer.get("rating")
            if rating is not None:
                result["ratings"].append(rating)
            result["responses"].append({
                "respondentId": response.respondent_id,
                "respondentName": _display_name(response.respondent),
                "targetStudentId": response.target_student_id,
                "targetStudentName": _display_name(response.target_student),
                "rating": rating,
                "text": answer.get("text") or "",
            })
    for result in aggregated.values():
        result["totalResponses"] = len(result["ratings"])
        result["averageRating"] = average_rating(result["ratings"])

    completion = aggregate_completion_for_project(db, assignment)
    survey = assignment.survey
    return {
        "assignment": {
            "id": assignment.id,
            "projectId": assignment.project_id,
            "survey": {
                "id": survey.id,
                "title": survey.title,
                "description": survey.description,
                "criteria": [serialize_criterion(c) for c in criteria],
            },
            "deadline": format_datetime(assignment.deadline),
            "status": assignment.status,
        },
        "completionStatus": completion["students"],
        "aggregatedResults": list(aggregated.values()),
        "overallStats": {
            "totalStudents": completion["totalStudents"],
            "completedStudents": completion["completedStudents"],
            "overallCompletionPercentage": completion["overallCompletionPercentage"],
            "totalResponses": len(responses),
        },
    }


def who_rated_me(db: Session, assignment_id: int, target_student_id: int) -> List[dict]:
    respondents = {}
    for response in _responses_about(db, assignment_id, target_student_id):
        person = response.respondent
        respondents.setdefault(person.id, {"id": person.id, "name": person.name, "email": person.email})
    return list(respondents.values())

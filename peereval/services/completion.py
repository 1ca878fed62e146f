"""Submission completeness for peer-survey assignments.

A team member has "submitted" once they have a response for every other
member of their team. A team of one is complete by definition.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Set

from sqlalchemy.orm import Session

from peereval.core.exceptions import BusinessRuleError
from peereval.models.survey import SurveyAssignment, SurveyResponse
from peereval.services.surveys import get_assignment
from peereval.services.teams import find_student_team, team_member_ids
from peereval.utils.helpers import round_half_up


def submitted_targets(db: Session, assignment_id: int, respondent_ids: Iterable[int]) -> Dict[int, Set[int]]:
    """Distinct targets each respondent has a response for, read in one query."""
    respondent_ids = list(respondent_ids)
    targets: Dict[int, Set[int]] = defaultdict(set)
    if not respondent_ids:
        return targets
    rows = (
        db.query(SurveyResponse.respondent_id, SurveyResponse.target_student_id)
        .filter(
            SurveyResponse.assignment_id == assignment_id,
            SurveyResponse.respondent_id.in_(respondent_ids),
        )
        .distinct()
        .all()
    )
    for respondent_id, target_id in rows:
        targets[respondent_id].add(target_id)
    return targets


def teammates_rated(member_id: int, member_ids: List[int], targets: Set[int]) -> int:
    teammates = set(member_ids) - {member_id}
    return len(targets & teammates)


def completion_status(db: Session, assignment_id: int, student_id: int) -> dict:
    assignment = get_assignment(db, assignment_id)

    team = find_student_team(db, assignment.project_id, student_id)
    if team is None:
        raise BusinessRuleError("Student not part of a team")

    member_ids = team_member_ids(team)
    expected = len(member_ids) - 1
    targets = submitted_targets(db, assignment_id, member_ids)

    submitted_count = sum(
        1 for member_id in member_ids
        if teammates_rated(member_id, member_ids, targets[member_id]) == expected
    )
    return {
        "allSubmitted": submitted_count == len(member_ids),
        "submittedCount": submitted_count,
        "totalCount": len(member_ids),
        "teamMemberIds": member_ids,
    }


def aggregate_completion_for_project(db: Session, assignment: SurveyAssignment) -> dict:
    """
    Per-student completion for every team in the assignment's project.

    Returns:
        {"students": [...], "totalStudents", "completedStudents",
         "overallCompletionPercentage"}
    """
    teams = assignment.project.teams
    all_ids = [member.student_id for team in teams for member in team.members]
    targets = submitted_targets(db, assignment.id, all_ids)

    students = []
    for team in teams:
        member_ids = team_member_ids(team)
        expected = len(member_ids) - 1
        for member in team.members:
            completed = teammates_rated(member.student_id, member_ids, targets[member.student_id])
            if expected > 0:
                percentage = round_half_up(completed / expected * 100)
            else:
                percentage = 100
            students.append({
                "studentId": member.student_id,
                "studentName": member.student.name,
                "studentEmail": member.student.email,
                "teamId": team.id,
                "teamName": team.name,
                "expectedSubmissions": expected,
                "completedSubmissions": completed,
                "completionPercentage": percentage,
                "isComplete": completed >= expected,
            })

    total = len(students)
    completed_students = sum(1 for s in students if s["isComplete"])
    overall = round_half_up(completed_students / total * 100) if total else 0
    return {
        "students": students,
        "totalStudents": total,
        "completedStudents": completed_students,
        "overallCompletionPercentage": overall,
    }

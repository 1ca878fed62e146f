import logging
from typing import List

from sqlalchemy.orm import Session

from peereval.core.exceptions import ForbiddenError, NotFoundError
from peereval.models.invite import Invite
from peereval.models.project import Project
from peereval.models.survey import SurveyAssignment, SurveyResponse
from peereval.models.team import Team, TeamMember
from peereval.models.user import User, RoleType
from peereval.utils.helpers import format_datetime

logger = logging.getLogger(__name__)


def _person(user: User) -> dict:
    return {"id": user.id, "email": user.email, "name": user.name}


def serialize_project(project: Project) -> dict:
    return {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "instructorId": project.instructor_id,
        "createdAt": format_datetime(project.created_at),
    }


def serialize_invite(invite: Invite) -> dict:
    return {
        "id": invite.id,
        "projectId": invite.project_id,
        "studentId": invite.student_id,
        "status": invite.status.value,
        "createdAt": format_datetime(invite.created_at),
    }


def get_project(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("Project not found")
    return project


def create_project(db: Session, title: str, description: str, instructor_id: int) -> Project:
    instructor = db.query(User).filter(User.id == instructor_id).first()
    if not instructor or instructor.role != RoleType.INSTRUCTOR:
        raise ForbiddenError("Only instructors can create projects")

    project = Project(title=title, description=description, instructor_id=instructor_id)
    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info(f"Instructor {instructor_id} created project {project.id}")
    return project


def list_projects_for_user(db: Session, user_id: int) -> List[dict]:
    """
    Instructors get the projects they own with every invite sent for them;
    students get their invites, each with the project and its instructor.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    if user.role == RoleType.INSTRUCTOR:
        projects = (
            db.query(Project)
            .filter(Project.instructor_id == user_id)
            .order_by(Project.id)
            .all()
        )
        return [
            {
                **serialize_project(project),
                "invites": [
                    {**serialize_invite(invite), "student": _person(invite.student)}
                    for invite in project.invites
                ],
            }
            for project in projects
        ]

    invites = db.query(Invite).filter(Invite.student_id == user_id).order_by(Invite.id).all()
    return [
        {
            **serialize_invite(invite),
            "project": {
                **serialize_project(invite.project),
                "instructor": _person(invite.project.instructor),
            },
        }
        for invite in invites
    ]


def delete_project(db: Session, project_id: int, instructor_id: int) -> None:
    """
    Delete a project and everything hanging off it, children first.

    Order: responses, assignments, team members, teams, invites, project.
    All steps run in one transaction; any failure rolls the whole cascade back.
    """
    project = get_project(db, project_id)
    if project.instructor_id != instructor_id:
        raise ForbiddenError("Unauthorized")

    team_ids = [team_id for (team_id,) in db.query(Team.id).filter(Team.project_id == project_id)]
    assignment_ids = [
        assignment_id
        for (assignment_id,) in db.query(SurveyAssignment.id).filter(SurveyAssignment.project_id == project_id)
    ]

    try:
        if assignment_ids:
            deleted = db.query(SurveyResponse).filter(
                SurveyResponse.assignment_id.in_(assignment_ids)
            ).delete(synchronize_session=False)
            logger.info(f"Deleted {deleted} survey responses for project {project_id}")

            db.query(SurveyAssignment).filter(
                SurveyAssignment.project_id == project_id
            ).delete(synchronize_session=False)
            logger.info(f"Deleted {len(assignment_ids)} survey assignments for project {project_id}")

        if team_ids:
            db.query(TeamMember).filter(
                TeamMember.team_id.in_(team_ids)
            ).delete(synchronize_session=False)

            db.query(Team).filter(Team.project_id == project_id).delete(synchronize_session=False)
            logger.info(f"Deleted {len(team_ids)} teams for project {project_id}")

        db.query(Invite).filter(Invite.project_id == project_id).delete(synchronize_session=False)
        db.query(Project).filter(Project.id == project_id).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Rolled back deletion of project {project_id}", exc_info=True)
        raise

    logger.info(f"Instructor {instructor_id} deleted project {project_id}")

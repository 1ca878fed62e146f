from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from peereval.core.security.auth import ensure_acting_as, ensure_self_or_project_owner, get_current_user
from peereval.db.session import get_db
from peereval.models.invite import Invite
from peereval.models.project import Project
from peereval.models.user import User
from peereval.schemas.project import ProjectCreateRequest, ProjectDeleteRequest
from peereval.services import projects as project_service
from peereval.services.surveys import list_project_assignments
from peereval.services.teams import my_team, unassigned_students

router = APIRouter(prefix="/projects", tags=["projects"])


def _ensure_participant(db: Session, project: Project, user: User) -> None:
    """Owners and invited students may read a project's survey list."""
    if project.instructor_id == user.id:
        return
    invited = db.query(Invite).filter(
        Invite.project_id == project.id,
        Invite.student_id == user.id,
    ).first()
    if not invited:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")


@router.post("/create")
def create_project(
    request: ProjectCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ensure_acting_as(current_user, request.instructor_id)
    project = project_service.create_project(db, request.title, request.description, request.instructor_id)
    return {"project": project_service.serialize_project(project)}


@router.delete("/delete")
def delete_project(
    request: ProjectDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ensure_acting_as(current_user, request.instructor_id)
    project_service.delete_project(db, request.project_id, request.instructor_id)
    return {"success": True}


@router.get("/list")
def list_projects(
    user_id: int = Query(..., alias="userId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ensure_acting_as(current_user, user_id)
    return {"success": True, "projects": project_service.list_projects_for_user(db, user_id)}


@router.get("/{project_id}/my-team")
def get_my_team(
    project_id: int,
    student_id: int = Query(..., alias="studentId"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    project = project_service.get_project(db, project_id)
    ensure_self_or_project_owner(current_user, student_id, project)
    return {"success": True, "members": my_team(db, project_id, student_id)}


@router.get("/{project_id}/surveys")
def list_surveys(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    project = project_service.get_project(db, project_id)
    _ensure_participant(db, project, current_user)
    return {"success": True, "assignments": list_project_assignments(db, project_id)}


@router.get("/{project_id}/unassigned-students")
def list_unassigned_students(
    project_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    project = project_service.get_project(db, project_id)
    ensure_acting_as(current_user, project.instructor_id)
    return {"success": True, "students": unassigned_students(db, project_id)}

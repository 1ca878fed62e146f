from pydantic import EmailStr, Field
from peereval.schemas.common import CamelModel

class ProjectCreateRequest(CamelModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    instructor_id: int

class ProjectDeleteRequest(CamelModel):
    project_id: int
    instructor_id: int

class InviteSendRequest(CamelModel):
    project_id: int
    student_email: EmailStr
    instructor_id: int

class InviteRespondRequest(CamelModel):
    invite_id: int
    status: str
    student_id: int

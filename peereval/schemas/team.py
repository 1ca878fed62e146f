from typing import List
from pydantic import Field
from peereval.schemas.common import CamelModel

class TeamCreateRequest(CamelModel):
    project_id: int
    student_ids: List[int] = Field(..., min_length=1)

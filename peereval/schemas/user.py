from pydantic import EmailStr, Field
from peereval.models.user import RoleType
from peereval.schemas.common import CamelModel

class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    role: RoleType

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class PasswordResetRequest(CamelModel):
    email: EmailStr

class UpdatePasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)

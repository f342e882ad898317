from fastapi import status
from pydantic import BaseModel

from src.domain.exceptions import InvitationError


class ApiError(BaseModel):
    code: str
    message: str

    @classmethod
    def from_invitation_error(cls, exc: InvitationError) -> "ApiError":
        return cls(code=exc.code, message=exc.message)


class ClientError(Exception):
    def __init__(self, base_error: ApiError, status_code: int = status.HTTP_400_BAD_REQUEST):
        self.base_error = base_error
        self.status_code = status_code
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(self, base_error: ApiError):
        self.base_error = base_error
        super().__init__(base_error.message)

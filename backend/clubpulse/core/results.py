import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class ErrorKind(str, enum.Enum):
    VALIDATION = 'validation'
    CONFIGURATION = 'configuration'
    COLLABORATOR = 'collaborator'
    CONFLICT = 'conflict'
    NOT_FOUND = 'not_found'
    UNAUTHORIZED = 'unauthorized'
    INTERNAL = 'internal'


HTTP_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.INTERNAL: 500,
    ErrorKind.COLLABORATOR: 502,
}

UNAUTHORIZED_MESSAGE = 'Unauthorized.'


@dataclass
class OperationResult:
    """Uniform outcome of a service operation; services return these instead of raising."""
    success: bool
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, message: str, **data: Any) -> 'OperationResult':
        return cls(True, message, data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, **data: Any) -> 'OperationResult':
        return cls(False, message, data, kind)

    @classmethod
    def unauthorized(cls) -> 'OperationResult':
        return cls.fail(ErrorKind.UNAUTHORIZED, UNAUTHORIZED_MESSAGE)

    @property
    def http_status(self) -> int:
        if self.success:
            return 200
        return HTTP_STATUS.get(self.error or ErrorKind.INTERNAL, 500)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success, "message": self.message}
        body.update(self.data)
        return body

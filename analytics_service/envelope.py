from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar('T')

SUCCESS_CODE = 200


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    """Uniform success/code/message/payload wrapper.

    Every gateway call returns one, and every HTTP response body is one.
    """

    success: bool
    code: int
    message: str
    data: Optional[T] = None

    @classmethod
    def ok(cls, data=None, message='Success'):
        return cls(success=True, code=SUCCESS_CODE, message=message, data=data)

    @classmethod
    def error(cls, code, message):
        return cls(success=False, code=code, message=message, data=None)

    @property
    def has_data(self) -> bool:
        """True only for a successful response that carries a payload."""
        return self.success and self.code == SUCCESS_CODE and self.data is not None

    def payload_or(self, default: Any) -> Any:
        return self.data if self.has_data else default

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'code': self.code,
            'message': self.message,
            'data': self.data,
        }

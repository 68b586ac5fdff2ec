from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a fallible operation

    Every operation that can fail (publishing, persistence, validation)
    returns one of these instead of raising across component boundaries.

    Attributes:
        success: True when the operation completed
        error: Human-readable reason when success is False
        code: Machine-readable failure category (e.g. "NOT_CONNECTED")
        data: Optional payload produced by the operation
    """

    success: bool
    error: Optional[str] = None
    code: Optional[str] = None
    data: Any = None

    @staticmethod
    def ok(data: Any = None) -> 'OperationResult':
        return OperationResult(success=True, data=data)

    @staticmethod
    def fail(error: str, code: str = 'ERROR') -> 'OperationResult':
        return OperationResult(success=False, error=error, code=code)

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict:
        """Serialize for REST responses"""
        result = {'success': self.success}
        if self.error is not None:
            result['error'] = self.error
        if self.code is not None:
            result['code'] = self.code
        return result

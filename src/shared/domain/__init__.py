from .operation_result import OperationResult

__all__ = ['OperationResult']

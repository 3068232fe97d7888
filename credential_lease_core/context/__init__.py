"""
Context management for the credential lease engine.

Request cancellation/deadline handling and operation logging context.
"""

from .operation_context import OperationContext, OperationHandler, operation
from .request_context import RequestContext

__all__ = [
    "OperationContext",
    "OperationHandler",
    "operation",
    "RequestContext",
]

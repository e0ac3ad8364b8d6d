"""
Domain exceptions for Knowledge Chakra
======================================

Services raise these instead of ``HTTPException`` so they stay usable outside
a request. ``knowledge_chakra.main`` registers a handler that turns any
``ChakraError`` into a JSON response with its ``status_code``:

    {"detail": "Assessment with ID '7' not found", "code": "ASSESSMENT_NOT_FOUND"}

Anything else that escapes a route is logged and reported as a bare 500.
"""

from typing import Any, Dict, Optional


class ChakraError(Exception):
    """Base exception for all Knowledge Chakra errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class UnauthorizedError(ChakraError):
    """No caller identity, or the identity could not be verified"""

    status_code = 401

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message, code="UNAUTHORIZED")


class ForbiddenError(ChakraError):
    """Caller is authenticated but lacks the role or ownership"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="FORBIDDEN")


class NotFoundError(ChakraError):
    """Referenced entity does not exist"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class InvalidStateError(ChakraError):
    """Operation not permitted in the entity's current state"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="INVALID_STATE", details=details)


class InternalError(ChakraError):
    """Unexpected persistence or logic fault"""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, code="INTERNAL_ERROR")

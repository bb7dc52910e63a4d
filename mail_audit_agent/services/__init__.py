"""Query interpretation, Mimecast search and orchestration."""

from .email_auditor import (
    AuditorState,
    AuditQueryError,
    EmailAuditor,
    NotReadyError,
    build_auditor,
)
from .query_interpreter import (
    EmptyModelResponseError,
    IntentNotRecognizedError,
    InterpretationError,
    ModelServiceError,
    QueryInterpreter,
)
from .search_gateway import GatewayError, SearchGateway

__all__ = [
    "AuditorState",
    "AuditQueryError",
    "EmailAuditor",
    "NotReadyError",
    "build_auditor",
    "EmptyModelResponseError",
    "IntentNotRecognizedError",
    "InterpretationError",
    "ModelServiceError",
    "QueryInterpreter",
    "GatewayError",
    "SearchGateway",
]

from __future__ import annotations

from typing import Any, Dict, List, Optional


class AgentMemoryError(Exception):
    """Base error. `code` is stable and safe to match on; `details` is free-form."""

    def __init__(
        self,
        message: str,
        code: str = "MEMORY_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details: Dict[str, Any] = dict(details or {})


class ValidationError(AgentMemoryError):
    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Validation failed for field '{field}': {reason}",
            "VALIDATION_ERROR",
            {"field": field, "value": value, "reason": reason},
        )
        self.field = field


class ConfigValidationError(AgentMemoryError):
    def __init__(self, config_name: str, errors: List[str]):
        super().__init__(
            f"Invalid {config_name}: " + "; ".join(errors),
            "VALIDATION_ERROR",
            {"config": config_name, "errors": list(errors)},
        )
        self.errors = list(errors)


class CompressionError(AgentMemoryError):
    def __init__(
        self,
        reason: str,
        agent_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        original: Optional[BaseException] = None,
    ):
        where = []
        if agent_id is not None:
            where.append(f"agent={agent_id}")
        if conversation_id is not None:
            where.append(f"conversation={conversation_id}")
        suffix = f" ({', '.join(where)})" if where else ""
        super().__init__(
            f"Memory compression failed: {reason}{suffix}",
            "COMPRESSION_ERROR",
            {
                "reason": reason,
                "agent_id": agent_id,
                "conversation_id": conversation_id,
                "original_error": str(original) if original is not None else None,
            },
        )
        self.agent_id = agent_id
        self.conversation_id = conversation_id


class CollaboratorError(AgentMemoryError):
    """A storage or embedding call failed. The original exception is chained."""

    def __init__(self, operation: str, original: BaseException):
        super().__init__(
            f"{operation} failed: {original}",
            "COLLABORATOR_ERROR",
            {"operation": operation, "original_error": repr(original)},
        )
        self.operation = operation

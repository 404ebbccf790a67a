from dataclasses import dataclass, field
from typing import Any, Dict, Optional

SUCCESS = "success"
VALIDATION = "validation"
CONFLICT = "conflict"
NOT_FOUND = "not_found"
ERROR = "error"

GENERIC_DB_ERROR = "Database error occurred"


@dataclass
class ServiceResult:
    """Outcome of a manager operation.

    ``kind`` tags the variant: ``success`` carries ``data`` (and ``id`` for
    inserts); ``validation`` carries per-field ``errors``; ``conflict`` and
    ``not_found`` carry only a message; ``error`` is a persistence failure
    whose detail has already been logged.
    """

    kind: str
    message: str = ""
    errors: Dict[str, str] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None

    @property
    def ok(self):
        return self.kind == SUCCESS

    @classmethod
    def success(cls, message="", id=None, **data):
        return cls(SUCCESS, message, id=id, data=data)

    @classmethod
    def invalid(cls, errors, message=None):
        if message is None:
            message = next(iter(errors.values())) if len(errors) == 1 else "Please correct the errors below."
        return cls(VALIDATION, message, errors=dict(errors))

    @classmethod
    def conflict(cls, message, **data):
        return cls(CONFLICT, message, data=data)

    @classmethod
    def not_found(cls, message):
        return cls(NOT_FOUND, message)

    @classmethod
    def failure(cls, message=GENERIC_DB_ERROR):
        return cls(ERROR, message)

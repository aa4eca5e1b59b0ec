from __future__ import annotations

from typing import Any, Dict

from mmg_procurement.ui_strings import error_message


class AppError(Exception):
    """Base for every error the engine reports to callers.

    Subclasses pin ``code``, ``message_key``, ``http_status`` and ``critical``
    as class attributes; any of them can be overridden per instance.
    """

    code = "system_error"
    message_key = "unexpected_error"
    http_status = 500
    critical = True

    def __init__(
        self,
        code: str | None = None,
        message_key: str | None = None,
        http_status: int | None = None,
        critical: bool | None = None,
        details: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        if code:
            self.code = code.strip()
        if message_key:
            self.message_key = message_key.strip()
        if http_status:
            self.http_status = int(http_status)
        if critical is not None:
            self.critical = bool(critical)
        self.details = str(details).strip() if details else None
        self.payload: Dict[str, Any] = dict(payload or {})
        super().__init__(self.details or self.code)

    def user_message(self) -> str:
        return error_message(self.message_key, error_message("unexpected_error"))

    def to_response_payload(self, request_id: str) -> Dict[str, Any]:
        return {
            **self.payload,
            "error": self.code,
            "message": self.user_message(),
            "request_id": request_id,
        }


class UserActionError(AppError):
    code = "action_invalid"
    message_key = "action_not_allowed_for_status"
    http_status = 400
    critical = False


class ValidationError(UserActionError):
    code = "validation_error"
    message_key = "required_fields_missing"


class NotFoundError(UserActionError):
    code = "not_found"
    message_key = "procurement_not_found"
    http_status = 404


class InvalidTransitionError(UserActionError):
    """Operation not legal from the procurement's current status."""

    code = "invalid_transition"
    http_status = 409

    def __init__(self, operation: str, status: str | None, **kwargs) -> None:
        payload = {"operation": operation, "status": status, **(kwargs.pop("payload", None) or {})}
        kwargs.setdefault("details", f"{operation} is not allowed from status {status!r}")
        super().__init__(payload=payload, **kwargs)
        self.operation = operation
        self.status = status


class DuplicateIndentNumberError(UserActionError):
    code = "duplicate_indent_number"
    message_key = "indent_number_exists"
    http_status = 409


class StorageError(AppError):
    code = "storage_error"
    message_key = "storage_failure"

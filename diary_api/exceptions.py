"""
Diary Backend — Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for the error scenarios of the API.
How:   Each exception carries a human-readable message and an optional
       context dict. Global exception handlers (registered in main.py)
       catch these and return `{ok: false, error}` JSON bodies with the
       matching HTTP status code.
Who:   Raised by routes, services and the KV store; caught by global handlers.

Exception Hierarchy:
    DiaryError (base)
    ├── BadRequestError        → 400 Bad Request (malformed JSON, bad key/cursor)
    ├── MethodNotAllowedError  → 405 Method Not Allowed
    ├── StoreUnavailableError  → 500 (no key-value store binding configured)
    └── StoreFailureError      → 500 (store read/write raised)

Messages are the user-facing strings shown by the diary frontend, which is
why they are in Chinese. The context dict is logged, never returned.
"""

from typing import Any, Dict, Optional

MSG_BAD_PAYLOAD = "数据格式错误"
MSG_INVALID_KEY = "记录键无效"
MSG_INVALID_CURSOR = "分页游标无效"
MSG_METHOD_NOT_ALLOWED = "方法不允许"
MSG_STORE_UNAVAILABLE = "KV 存储未就绪。请配置 DIARY_KV_URL。"
MSG_WRITE_FAILED = "写入数据库失败"
MSG_READ_FAILED = "读取数据库失败"
MSG_NOT_FOUND = "资源不存在"
MSG_INTERNAL = "服务器内部错误"


class DiaryError(Exception):
    """
    Base exception for all diary application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info (logged but NOT returned to client)
        status_code: HTTP status the global handler responds with
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = MSG_INTERNAL,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class BadRequestError(DiaryError):
    """
    Raised when the client sent something the API cannot accept.

    When:    Body is not JSON / not an object, record key lacks the
             `diary:` prefix, or a listing cursor cannot be decoded.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = MSG_BAD_PAYLOAD,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class MethodNotAllowedError(DiaryError):
    """Raised for HTTP methods a resource does not support. HTTP 405."""

    status_code = 405

    def __init__(
        self,
        method: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if method:
            ctx["method"] = method
        super().__init__(message=MSG_METHOD_NOT_ALLOWED, context=ctx)


class StoreUnavailableError(DiaryError):
    """
    Raised when no key-value store binding is configured.

    What:    DIARY_KV_URL is empty, so there is nothing to read or write.
    When:    At the start of every record/summary operation.
    HTTP:    500 Internal Server Error

    This is a deployment problem, not a transient one: the request is not
    retried and the message tells the operator what to configure.
    """

    status_code = 500

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=MSG_STORE_UNAVAILABLE, context=context)


class StoreFailureError(DiaryError):
    """
    Raised when a key-value store primitive (put/get/delete/list) fails.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        The underlying driver error is kept in `context` and logged
        server-side only.
    """

    status_code = 500

    def __init__(
        self,
        message: str = MSG_WRITE_FAILED,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if operation:
            ctx["operation"] = operation
        super().__init__(message=message, context=ctx)
        self.operation = operation

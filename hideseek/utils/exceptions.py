"""
Application exception hierarchy.
All errors raised by the stores, services and facade derive from AppException.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    應用程式例外的基底類別。

    - **message**: 錯誤訊息
    - **code**: 錯誤代碼（供 API 回應使用）
    - **details**: 額外的錯誤資訊
    """
    code = "APP_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(AppException):
    """
    輸入資料格式或範圍錯誤，一律是呼叫端的問題。

    Args:
        field_name: 出錯的欄位名稱
        reason: 錯誤原因
    """
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, field_name: str, reason: str):
        super().__init__(
            message=f"Invalid {field_name}: {reason}",
            details={"field": field_name, "reason": reason}
        )
        self.field_name = field_name
        self.reason = reason


class NotFoundError(AppException):
    """
    找不到指定的資源。
    """
    code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None
    ):
        super().__init__(
            message=message,
            details={"resource_type": resource_type, "resource_id": resource_id}
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class AuthorizationError(AppException):
    """
    呼叫者沒有存取該資源的權限（例如非建立者查詢猜測紀錄）。
    """
    code = "AUTHORIZATION_ERROR"
    status_code = 403

    def __init__(self, message: str = "Access denied", resource_id: Optional[str] = None):
        super().__init__(message=message, details={"resource_id": resource_id})


class RateLimitError(AppException):
    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", retry_after_ms: Optional[int] = None):
        super().__init__(message=message, details={"retry_after_ms": retry_after_ms})
        self.retry_after_ms = retry_after_ms


class StorageError(AppException):
    """
    Key-value store 連線或操作失敗，屬於暫時性錯誤，可重試。

    Args:
        message: 錯誤訊息
        operation: 失敗的操作（get/set/delete...）
        key: 相關的 key（如有）
    """
    code = "STORAGE_ERROR"
    status_code = 503

    def __init__(self, message: str, operation: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message=message, details={"operation": operation, "key": key})
        self.operation = operation
        self.key = key


class BusinessLogicError(AppException):
    code = "BUSINESS_LOGIC_ERROR"
    status_code = 409

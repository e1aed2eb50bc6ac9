"""
全域異常處理。
將應用程式例外轉換成統一格式的 JSON 回應：{error, code, details}。
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from hideseek.utils.exceptions import AppException, RateLimitError, StorageError
from hideseek.utils.logger import logger


def setup_exception_handlers(app: FastAPI) -> None:
    """
    註冊例外處理器。

    Args:
        app: FastAPI 應用程式
    """

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        log = logger.error if isinstance(exc, StorageError) else logger.info
        log("Request failed", extra={
            "path": request.url.path,
            "code": exc.code,
            "status": exc.status_code,
            "error": exc.message,
        })
        headers = {}
        if isinstance(exc, RateLimitError) and exc.retry_after_ms:
            # Retry-After 以秒為單位，至少 1 秒
            headers["Retry-After"] = str(max(1, -(-exc.retry_after_ms // 1000)))
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "code": "INTERNAL_SERVER_ERROR", "details": {}},
        )

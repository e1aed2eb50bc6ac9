"""
Application logger.
Structured context is passed through ``extra={...}`` and rendered as key=value pairs.
"""
import logging
import sys

# LogRecord 內建屬性，格式化時排除
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """
    將 extra 欄位附加在訊息後面的 Formatter。

    範例輸出:
    ```
    2025-05-20 10:00:00,000 INFO hideseek Stored game session | game_id=abc ttl=2592000
    ```
    """

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{base} | {rendered}"


def setup_logger(name: str = "hideseek", level: str = "INFO") -> logging.Logger:
    """
    建立並設定 logger，重複呼叫不會重複加 handler。

    Args:
        name: logger 名稱
        level: 日誌等級

    Returns:
        設定完成的 Logger
    """
    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ContextFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        log.addHandler(handler)
        log.propagate = False
    log.setLevel(level.upper())
    return log


logger = setup_logger()

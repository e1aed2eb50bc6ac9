"""
API 依賴注入函數。
服務由 lifespan 建立並放在 app.state，呼叫者身分由主機應用透過標頭提供。
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request

from hideseek.application.services.cleanup_service import CleanupService
from hideseek.application.services.container import Services
from hideseek.application.services.data_access import DataAccessFacade
from hideseek.domain.logic.validation import validate_user_id
from hideseek.utils.exceptions import AuthorizationError, ValidationError

_TRUE_VALUES = {"1", "true", "yes"}


@dataclass
class Identity:
    """
    呼叫者身分。
    - **user_id**: 來自 X-User-Id
    - **username**: 來自 X-Username（可選）
    - **is_moderator**: 來自 X-Moderator
    """
    user_id: str
    username: Optional[str] = None
    is_moderator: bool = False


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_facade(services: Services = Depends(get_services)) -> DataAccessFacade:
    """
    獲取 DataAccessFacade 實例。
    """
    return services.facade


def get_cleanup_service(services: Services = Depends(get_services)) -> CleanupService:
    return services.cleanup


def get_identity(
    x_user_id: Optional[str] = Header(None),
    x_username: Optional[str] = Header(None),
    x_moderator: Optional[str] = Header(None),
) -> Identity:
    """
    從標頭取得呼叫者身分。

    Raises:
        ValidationError: 缺少或不合法的 X-User-Id
    """
    if not x_user_id:
        raise ValidationError("X-User-Id", "header is required")
    validate_user_id(x_user_id)
    return Identity(
        user_id=x_user_id,
        username=x_username or None,
        is_moderator=(x_moderator or "").strip().lower() in _TRUE_VALUES,
    )


def require_moderator(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_moderator:
        raise AuthorizationError("Moderator access required")
    return identity

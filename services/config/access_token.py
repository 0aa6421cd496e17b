"""Runtime upstream access token, settable over the API without a restart."""

from typing import Any, Dict, Optional

from core.logging import get_audit_logger_safe
from core.storage import InMemoryStorage, KeyValueStore
from core.utils.exceptions import ValidationError

logger = get_audit_logger_safe("services.config.access_token")

ACCESS_TOKEN_KEY = "config:access_token"


class ConfigStorage:
    """Process-wide configuration values kept in an in-memory store"""

    def __init__(self, storage: Optional[KeyValueStore] = None):
        self.storage = storage if storage is not None else InMemoryStorage()

    def set_access_token(self, token: str) -> None:
        self.storage.set(ACCESS_TOKEN_KEY, token)

    def get_access_token(self) -> Optional[str]:
        return self.storage.get(ACCESS_TOKEN_KEY)

    def delete_access_token(self) -> None:
        self.storage.delete(ACCESS_TOKEN_KEY)


def mask_token(token: Optional[str]) -> Optional[str]:
    """Show only the first and last four characters."""
    if token is None:
        return None
    return f"{token[:4]}...{token[-4:]}"


def normalize_token(token: Any) -> str:
    if not isinstance(token, str):
        raise ValidationError("Token is required and must be a string", field="token")
    token = token.strip()
    if not token:
        raise ValidationError("Token cannot be empty", field="token")
    return token


class SetAccessTokenUseCase:
    def __init__(self, config_storage: ConfigStorage):
        self.config_storage = config_storage

    def execute(self, token: Any) -> Dict[str, Any]:
        self.config_storage.set_access_token(normalize_token(token))
        logger.info("Access token updated")
        return {"success": True, "message": "Access token updated successfully"}


class GetAccessTokenUseCase:
    def __init__(self, config_storage: ConfigStorage):
        self.config_storage = config_storage

    def execute(self) -> Dict[str, Any]:
        token = self.config_storage.get_access_token()
        return {"token": mask_token(token), "isSet": token is not None}


class DeleteAccessTokenUseCase:
    def __init__(self, config_storage: ConfigStorage):
        self.config_storage = config_storage

    def execute(self) -> Dict[str, Any]:
        self.config_storage.delete_access_token()
        logger.info("Access token deleted")
        return {"success": True, "message": "Access token deleted successfully"}

from .access_token import (
    ConfigStorage,
    DeleteAccessTokenUseCase,
    GetAccessTokenUseCase,
    SetAccessTokenUseCase,
)

__all__ = [
    "ConfigStorage",
    "DeleteAccessTokenUseCase",
    "GetAccessTokenUseCase",
    "SetAccessTokenUseCase",
]

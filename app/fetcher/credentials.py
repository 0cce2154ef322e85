from typing import Protocol

import app.settings as settings
from app.errors import CredentialError


class CredentialProvider(Protocol):
    """Supplies the clear-text credentials of the account used for searches."""

    async def get_account_credentials(self) -> tuple[str, str]:
        ...


class StaticCredentialProvider:
    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password

    @classmethod
    def from_settings(cls) -> "StaticCredentialProvider":
        return cls(settings.OSU_USERNAME, settings.OSU_PASSWORD)

    async def get_account_credentials(self) -> tuple[str, str]:
        if not self.username or not self.password:
            raise CredentialError("no osu! account configured (OSU_USERNAME/OSU_PASSWORD)")

        return self.username, self.password

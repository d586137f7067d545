from secrets import compare_digest
from typing import Optional, Protocol

from cdn_server.app.errors import (
    ConfigMissingError,
    UnauthorizedError,
    MISSING_AUTH_TOKEN,
    INCORRECT_AUTH_TOKEN,
)
from cdn_server.logger_config import setup_logger

logger = setup_logger(__name__)


class Authorizer(Protocol):
    def authorize(self, token: Optional[str]) -> None:
        """Raise a CdnError if ``token`` may not modify the store."""
        ...


class SharedTokenAuthorizer:
    """Accepts exactly one bearer token, shared by every client."""

    def __init__(self, secret: Optional[str]):
        self._secret = secret

    def authorize(self, token: Optional[str]) -> None:
        if not self._secret:
            logger.error("Auth token is not configured, rejecting request")
            raise ConfigMissingError(MISSING_AUTH_TOKEN)

        if token is None or not compare_digest(token.encode(), self._secret.encode()):
            logger.warning("Rejected request with incorrect authorization token")
            raise UnauthorizedError(INCORRECT_AUTH_TOKEN)

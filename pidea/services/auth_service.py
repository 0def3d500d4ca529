import secrets

import structlog
from fastapi import HTTPException, Request, status

from pidea.request_context import RequestContext


logger = structlog.get_logger(__name__)


class AuthService:
    """Service for handling authentication and creating request contexts"""

    def __init__(self, api_key: str) -> None:
        self._api_key = api_key

    def authenticate(self, request: Request) -> RequestContext:
        """
        Authenticate a request and return RequestContext.

        Args:
            request: FastAPI Request object

        Returns:
            RequestContext for the local user

        Raises:
            HTTPException: 401 if the X-API-Key header is missing or wrong
        """
        api_key = request.headers.get("X-API-Key")
        if not api_key:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing API key",
            )

        if not secrets.compare_digest(api_key, self._api_key):
            logger.warning("rejected request with invalid api key", path=request.url.path)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid API key",
            )

        return RequestContext()

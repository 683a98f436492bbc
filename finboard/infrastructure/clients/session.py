"""Session service HTTP client: resolves a bearer token to a caller identity"""

import httpx
from finboard.config import settings
from finboard.domain.exceptions import AuthenticationError, AuthorizationUnavailableError
from finboard.domain.models import Principal, UserRole


class SessionClient:
    """Client for the external session service that issues and checks tokens"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.auth_service_url or "").rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds

    async def resolve(self, token: str) -> Principal:
        """
        Look up the user id and role bound to a session token.

        Raises:
            AuthenticationError: Service rejected the token (401)
            AuthorizationUnavailableError: On timeout, transport errors, other
                HTTP errors, or an invalid response body
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/session",
                    headers={"Authorization": f"Bearer {token}"},
                )
                if response.status_code == 401:
                    raise AuthenticationError("Session token rejected")
                response.raise_for_status()
                data = response.json()

                return Principal(
                    user_id=str(data["userId"]),
                    role=str(data.get("role") or UserRole.REGULAR.value),
                )

            except httpx.TimeoutException as e:
                raise AuthorizationUnavailableError(f"Session service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise AuthorizationUnavailableError(f"Session service error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise AuthorizationUnavailableError(f"Session service unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                raise AuthorizationUnavailableError(f"Invalid session data: {e}") from e

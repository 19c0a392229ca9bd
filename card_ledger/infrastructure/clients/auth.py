"""Hosted auth service HTTP client for validating tokens and managing linked accounts"""

import httpx
from dataclasses import dataclass
from typing import Any, Dict, Optional
from card_ledger.domain.exceptions import AuthServiceError, InvalidInputError, NotAuthenticatedError
from card_ledger.config import settings


@dataclass
class AuthenticatedUser:
    """Identity returned by the auth service for a valid token"""

    id: str
    email: Optional[str] = None


class AuthClient:
    """Client for the hosted auth service user and admin endpoints"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        service_key: str | None = None,
    ):
        self.base_url = base_url or settings.auth_api_base
        self.api_key = api_key if api_key is not None else settings.auth_api_key
        self.service_key = service_key if service_key is not None else settings.auth_service_key
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _admin_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.service_key}", "apikey": self.service_key}

    async def _send(
        self, method: str, path: str, headers: Dict[str, str], json: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                return await client.request(method, f"{self.base_url}{path}", headers=headers, json=json)
            except httpx.TimeoutException as e:
                raise AuthServiceError(f"Auth service timeout after {self.timeout}s") from e
            except httpx.RequestError as e:
                raise AuthServiceError(f"Auth service unreachable: {e}") from e

    @staticmethod
    def _user_from(response: httpx.Response) -> AuthenticatedUser:
        try:
            data = response.json()
            return AuthenticatedUser(id=str(data["id"]), email=data.get("email"))
        except (KeyError, ValueError, TypeError) as e:
            raise AuthServiceError(f"Invalid user payload from auth service: {e}") from e

    async def get_user(self, token: str) -> AuthenticatedUser:
        """
        Resolve an access token to the user it was issued for.

        Raises:
            NotAuthenticatedError: Token rejected by the auth service
            AuthServiceError: On timeout, other HTTP errors, or invalid response
        """
        response = await self._send(
            "GET", "/auth/v1/user", headers={"Authorization": f"Bearer {token}", "apikey": self.api_key}
        )
        if response.status_code in (401, 403):
            raise NotAuthenticatedError("Invalid or expired token")
        if response.is_error:
            raise AuthServiceError(f"Auth service error: {response.status_code}")
        return self._user_from(response)

    async def create_user(self, email: str, password: str, name: str, phone: Optional[str] = None) -> AuthenticatedUser:
        """
        Register a confirmed account through the admin API.

        Raises:
            InvalidInputError: Auth service refused the data (taken email, weak password)
            AuthServiceError: On timeout, other HTTP errors, or invalid response
        """
        response = await self._send(
            "POST",
            "/auth/v1/admin/users",
            headers=self._admin_headers(),
            json={
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"full_name": name, "phone": phone},
            },
        )
        if response.status_code in (400, 409, 422):
            raise InvalidInputError(f"Account could not be created: {_error_message(response)}")
        if response.is_error:
            raise AuthServiceError(f"Auth service error: {response.status_code}")
        return self._user_from(response)

    async def delete_user(self, user_id: str) -> None:
        """Remove an account created through the admin API"""
        response = await self._send("DELETE", f"/auth/v1/admin/users/{user_id}", headers=self._admin_headers())
        if response.is_error and response.status_code != 404:
            raise AuthServiceError(f"Auth service error: {response.status_code}")


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or str(response.status_code)
    if isinstance(data, dict):
        return str(data.get("msg") or data.get("message") or data.get("error_description") or data)
    return str(data)

"""
Async HTTP adapter between the reservation controller and the lab service.

``LabClient`` exposes the identity provider interface (register, authenticate,
current identity, sign out) and the store read/write interface (systems,
reservations by date, insert, delete). HTTP failures are translated into the
error types from :mod:`errors`; nothing is retried.
"""
import logging
from datetime import date
from typing import List, Optional

import httpx

from errors import (
    AuthError,
    ConflictError,
    FetchError,
    NotFoundError,
    OutOfRangeError,
    PermissionDeniedError,
    ReservationSystemError,
)
from schemas import Identity, ReservationRead, SystemRead
from settings import settings

logger = logging.getLogger(__name__)


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


class LabClient:
    def __init__(
        self,
        base_url: str = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.api_url,
            transport=transport,
            timeout=timeout if timeout is not None else settings.http_timeout,
        )
        self._token: Optional[str] = None
        self._identity: Optional[Identity] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _auth_headers(self) -> dict:
        if self._token is None:
            raise AuthError("Not signed in")
        return {"Authorization": f"Bearer {self._token}"}

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise FetchError(f"{method} {url} failed: {exc}") from exc

    # --- Identity provider ---

    async def register(self, email: str, password: str) -> None:
        response = await self._request("POST", "/auth/register", json={"email": email, "password": password})
        if response.status_code in (409, 422):
            raise AuthError(_detail(response))
        if response.status_code != 201:
            raise ReservationSystemError(f"Registration failed: {_detail(response)}")

    async def authenticate(self, email: str, password: str) -> Identity:
        response = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        if response.status_code in (401, 422):
            raise AuthError(_detail(response))
        if response.status_code != 200:
            raise ReservationSystemError(f"Sign-in failed: {_detail(response)}")

        body = response.json()
        self._token = body["access_token"]
        self._identity = Identity(user_id=body["user_id"], email=body["email"])
        logger.info("Signed in as %s", self._identity.user_id)
        return self._identity

    def current_identity(self) -> Optional[Identity]:
        return self._identity

    async def sign_out(self) -> None:
        if self._token is None:
            return
        try:
            response = await self._request("POST", "/auth/logout", headers=self._auth_headers())
            # An already expired token is as good as revoked
            if response.status_code not in (204, 401):
                raise ReservationSystemError(f"Sign-out failed: {_detail(response)}")
        finally:
            self._token = None
            self._identity = None

    # --- Store: reads ---

    async def list_resources(self) -> List[SystemRead]:
        response = await self._request("GET", "/systems", headers=self._auth_headers())
        if response.status_code == 401:
            raise AuthError(_detail(response))
        if response.status_code != 200:
            raise FetchError(f"Failed to fetch systems: {_detail(response)}")
        return [SystemRead.model_validate(item) for item in response.json()]

    async def list_reservations(self, day: date) -> List[ReservationRead]:
        response = await self._request(
            "GET", "/reservations",
            params={"date": day.isoformat()},
            headers=self._auth_headers(),
        )
        if response.status_code == 401:
            raise AuthError(_detail(response))
        if response.status_code != 200:
            raise FetchError(f"Failed to fetch reservations: {_detail(response)}")
        return [ReservationRead.model_validate(item) for item in response.json()]

    # --- Store: writes ---

    async def insert_reservation(self, system_id: str, day: date, slot_index: int) -> ReservationRead:
        response = await self._request(
            "POST", "/reservations",
            json={"system_id": system_id, "date": day.isoformat(), "time_slot": slot_index},
            headers=self._auth_headers(),
        )
        if response.status_code == 201:
            return ReservationRead.model_validate(response.json())
        if response.status_code == 409:
            raise ConflictError(_detail(response))
        if response.status_code == 404:
            raise NotFoundError(_detail(response))
        if response.status_code == 422:
            raise OutOfRangeError(_detail(response))
        if response.status_code == 401:
            raise AuthError(_detail(response))
        raise ReservationSystemError(f"Failed to make reservation: {_detail(response)}")

    async def delete_reservation(self, reservation_id: str) -> None:
        response = await self._request(
            "DELETE", f"/reservations/{reservation_id}",
            headers=self._auth_headers(),
        )
        if response.status_code == 204:
            return
        if response.status_code == 404:
            raise NotFoundError(_detail(response))
        if response.status_code == 403:
            raise PermissionDeniedError(_detail(response))
        if response.status_code == 401:
            raise AuthError(_detail(response))
        raise ReservationSystemError(f"Failed to cancel reservation: {_detail(response)}")

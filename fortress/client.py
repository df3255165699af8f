"""
Fortress Client — Tenant and database management over the Fortress API.

Provides the public API of the package:
- ``create_tenant`` / ``list_tenants`` / ``delete_tenant``
- ``create_database`` / ``list_databases`` / ``delete_database``
- ``connect_tenant`` / ``connect_database``: fetch the encrypted
  connection details, decrypt them with the API key and open an
  asyncpg connection

Every request carries the ``Api-Key`` header. Connection details come
back encrypted to that same key (see ``fortress.crypto``).

Security Note:
    Never log the API key, decrypted credentials or response bodies.
    Only log methods, paths and status codes.
"""
import logging
from typing import Any, Optional

import aiohttp
import asyncpg
import orjson

from .config import BASE_URL, DEFAULT_TIMEOUT, FortressConfig
from .crypto import decrypt
from .exceptions import FortressError, RequestError
from .models import ConnectionDetails, Database, Tenant

logger = logging.getLogger("fortress.client")

CONNECTION_KINDS = ("tenant", "database")


class Fortress:
    """Async client for one organization on the Fortress platform.

    Use as an async context manager so the underlying HTTP session is
    closed::

        async with Fortress(org_id, api_key) as client:
            conn = await client.connect_tenant("client1")

    ``timeout`` applies to every request, including requests sent through
    a caller-supplied ``session``.
    """

    def __init__(
        self,
        org_id: str,
        api_key: str,
        *,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self._org_id = org_id
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: FortressConfig, **kwargs) -> "Fortress":
        """Build a client from a validated FortressConfig."""
        return cls(
            config.org_id,
            config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            **kwargs,
        )

    @property
    def org_id(self) -> str:
        return self._org_id

    def __repr__(self) -> str:
        return f'<Fortress org_id={self._org_id!r} base_url={self._base_url!r}>'

    async def __aenter__(self) -> "Fortress":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    def _endpoint(self, *parts: str) -> str:
        path = "/".join(str(p) for p in parts)
        return f"{self._base_url}/v1/organization/{self._org_id}/{path}"

    async def _request(
        self, method: str, url: str, body: Optional[dict] = None
    ) -> Any:
        """Send an authenticated JSON request and return the parsed body.

        Raises:
            RequestError: If the response status is not 2xx.
        """
        headers = {
            "Content-Type": "application/json",
            "Api-Key": self._api_key,
        }
        data = orjson.dumps(body) if body is not None else None
        session = self._get_session()
        async with session.request(
            method, url, data=data, headers=headers, timeout=self._timeout,
        ) as response:
            payload = await response.read()
            logger.debug("%s %s -> %d", method, response.url.path, response.status)
            if not 200 <= response.status < 300:
                raise RequestError(response.status, response.reason or "")
        return orjson.loads(payload) if payload else None

    # ------------------------------------------------------------------
    # Tenants
    # ------------------------------------------------------------------

    async def create_tenant(
        self, id: str, alias: str, database_id: Optional[str] = None
    ) -> None:
        """Create a tenant, optionally inside an existing database.

        Args:
            id: Tenant identifier.
            alias: Human-readable tenant alias.
            database_id: Database to place the tenant in; the service
                picks one when omitted.
        """
        body = {"alias": alias}
        if database_id:
            body["databaseId"] = database_id
        await self._request("POST", self._endpoint("tenant", id), body)

    async def list_tenants(self) -> list[Tenant]:
        """List every tenant of the organization."""
        response = await self._request("GET", self._endpoint("tenants"))
        return [Tenant.model_validate(t) for t in response["tenants"]]

    async def delete_tenant(self, id: str) -> None:
        await self._request("DELETE", self._endpoint("tenant", id))

    async def connect_tenant(self, id: str) -> asyncpg.Connection:
        """Open a Postgres connection to a tenant."""
        details = await self.get_connection_details(id, "tenant")
        return await asyncpg.connect(**details.connect_kwargs())

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def create_database(self, alias: str) -> str:
        """Create a database and return its id."""
        response = await self._request(
            "POST", self._endpoint("database"), {"alias": alias},
        )
        return response["id"]

    async def list_databases(self) -> list[Database]:
        """List every database of the organization."""
        response = await self._request("GET", self._endpoint("databases"))
        return [Database.model_validate(d) for d in response["databases"]]

    async def delete_database(self, id: str) -> None:
        await self._request("DELETE", self._endpoint("database", id))

    async def connect_database(self, id: str) -> asyncpg.Connection:
        """Open a Postgres connection to a database."""
        details = await self.get_connection_details(id, "database")
        return await asyncpg.connect(**details.connect_kwargs())

    # ------------------------------------------------------------------
    # Connection details
    # ------------------------------------------------------------------

    async def get_connection_details(self, id: str, kind: str) -> ConnectionDetails:
        """Fetch and decrypt the connection details of a tenant or database.

        Args:
            id: Tenant or database identifier.
            kind: ``"tenant"`` or ``"database"``.

        Raises:
            ValueError: If kind is not a known resource type.
            RequestError: If the API rejects the request.
            CryptoError: If the payload cannot be decrypted with the API key.
            ConnectionDetailsError: If the plaintext is not a valid
                credentials document.
        """
        if kind not in CONNECTION_KINDS:
            raise ValueError(f"Unknown connection kind: {kind!r}")
        response = await self._request("GET", self._endpoint(kind, id, "uri"))
        if not isinstance(response, dict):
            raise FortressError(
                f"Response for {kind} {id!r} is not a JSON object"
            )
        encrypted = response.get("connectionDetails")
        if not encrypted:
            raise FortressError(
                f"Response for {kind} {id!r} has no connectionDetails"
            )
        plaintext = decrypt(self._api_key, encrypted)
        return ConnectionDetails.from_plaintext(plaintext)

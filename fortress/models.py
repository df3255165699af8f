"""API resources returned by the Fortress service."""
from typing import Any, Optional

import orjson
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConnectionDetailsError


class Tenant(BaseModel):
    """A tenant living inside one of the organization's databases."""

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}

    name: str
    alias: str
    database_id: Optional[str] = Field(default=None, alias="databaseId")
    date_created: Optional[str] = Field(default=None, alias="dateCreated")


class Database(BaseModel):
    """A database provisioned for the organization."""

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}

    id: str
    alias: str
    bytes_size: Optional[int] = Field(default=None, alias="bytesSize")
    average_read_iops: Optional[float] = Field(default=None, alias="averageReadIOPS")
    average_write_iops: Optional[float] = Field(default=None, alias="averageWriteIOPS")
    date_created: Optional[str] = Field(default=None, alias="dateCreated")


class ConnectionDetails(BaseModel):
    """Decrypted database credentials for a tenant or database."""

    model_config = {"populate_by_name": True}

    database_id: int = Field(alias="databaseId")
    url: str
    port: int
    username: str
    password: str = Field(repr=False)
    database: str

    @classmethod
    def from_plaintext(cls, plaintext: bytes) -> "ConnectionDetails":
        """Parse the JSON document recovered by ``fortress.crypto.decrypt``.

        Raises:
            ConnectionDetailsError: If the plaintext is not UTF-8 JSON or
                lacks a required field. Messages name fields only, never
                the decrypted values.
        """
        try:
            document = orjson.loads(plaintext)
        except orjson.JSONDecodeError:
            raise ConnectionDetailsError(
                "Connection details are not valid JSON"
            ) from None
        try:
            return cls.model_validate(document)
        except ValidationError as exc:
            fields = sorted({
                str(err["loc"][0]) for err in exc.errors() if err["loc"]
            })
            raise ConnectionDetailsError(
                f"Connection details are invalid: {', '.join(fields) or 'document'}"
            ) from None

    def connect_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``asyncpg.connect``."""
        return {
            "host": self.url,
            "port": self.port,
            "user": self.username,
            "password": self.password,
            "database": self.database,
        }

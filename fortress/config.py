"""
Fortress Configuration — Client settings loaded from the environment.

Reads:
    FORTRESS_ORG_ID = <organization id>
    FORTRESS_API_KEY = <API key, base64 EC private key body>
    FORTRESS_BASE_URL = <API root, optional>
    FORTRESS_TIMEOUT = <request timeout in seconds, optional>

Security Note:
    Never log the API key. It is also the decryption key for credentials.
"""
import os
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigError

logger = logging.getLogger("fortress.config")

BASE_URL = "https://api.fortress.build"
DEFAULT_TIMEOUT = 30.0

_ENV_NAMES = {
    "org_id": "FORTRESS_ORG_ID",
    "api_key": "FORTRESS_API_KEY",
    "base_url": "FORTRESS_BASE_URL",
    "timeout": "FORTRESS_TIMEOUT",
}


class FortressConfig(BaseModel):
    """Validated client configuration."""

    org_id: str
    api_key: str = Field(repr=False)
    base_url: str = Field(default=BASE_URL)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    @field_validator("org_id", "api_key")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Reject blank identifiers."""
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop the trailing slash."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL: {v!r}")
        return v

    @classmethod
    def from_env(cls) -> "FortressConfig":
        """Create FortressConfig from FORTRESS_* environment variables.

        Raises:
            ConfigError: If FORTRESS_ORG_ID or FORTRESS_API_KEY is unset, or
                any variable holds an invalid value.
        """
        missing = [
            name for name in ("FORTRESS_ORG_ID", "FORTRESS_API_KEY")
            if not os.environ.get(name, "").strip()
        ]
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        try:
            timeout = float(os.environ.get("FORTRESS_TIMEOUT", DEFAULT_TIMEOUT))
        except ValueError as exc:
            raise ConfigError("FORTRESS_TIMEOUT must be a number") from exc
        try:
            config = cls(
                org_id=os.environ["FORTRESS_ORG_ID"],
                api_key=os.environ["FORTRESS_API_KEY"],
                base_url=os.environ.get("FORTRESS_BASE_URL", BASE_URL),
                timeout=timeout,
            )
        except ValidationError as exc:
            # Name the variables only; values may include the API key.
            names = sorted({
                _ENV_NAMES.get(str(err["loc"][0]), str(err["loc"][0]))
                for err in exc.errors() if err["loc"]
            })
            raise ConfigError(
                f"Invalid environment variables: {', '.join(names)}"
            ) from None
        logger.debug(
            "Loaded Fortress config for org=%s (%s)", config.org_id, config.base_url,
        )
        return config

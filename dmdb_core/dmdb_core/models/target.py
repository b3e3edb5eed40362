"""Connection parameters resolved for a probe request."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from sqlalchemy.engine import URL


class ConnectionTarget(BaseModel):
    """Database endpoint and credentials for one scrape.

    Lives for a single HTTP request; the password is kept as a
    :class:`SecretStr` so it never leaks through ``repr`` or logs.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1)
    port: int = Field(..., ge=1, le=65535)
    user: str = Field(..., min_length=1)
    password: SecretStr
    driver: str = "dm+dmPython"
    options: dict[str, str] = Field(default_factory=dict)

    def url(self) -> URL:
        """Return the SQLAlchemy URL with credentials embedded."""
        return URL.create(
            self.driver,
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            query=self.options,
        )

    def dsn(self) -> str:
        """Render the connection string, password included."""
        return self.url().render_as_string(hide_password=False)

    def masked_dsn(self) -> str:
        """Render the connection string with the password replaced by ``***``."""
        return self.url().render_as_string(hide_password=True)

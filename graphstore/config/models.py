import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, field_validator

from graphstore.errors import ConfigurationError

SOCKS_PROXY_HOST = "socksProxyHost"
SOCKS_PROXY_PORT = "socksProxyPort"
SSL_INSECURE = "ssl.insecure"


class ProxyConfig(BaseModel):
    """Transport settings read once at startup.

    Proxying is enabled only when both ``socks_host`` and ``socks_port`` are
    set; ``insecure_tls`` is true for the raw values ``"true"`` (any case) and
    ``"1"``.
    """

    model_config = ConfigDict(frozen=True)

    socks_host: str | None = None
    socks_port: str | None = None
    insecure_tls: bool = False

    @field_validator("socks_host", "socks_port", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("insecure_tls", mode="before")
    @classmethod
    def parse_insecure(cls, value) -> bool:
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        value = str(value)
        return value.lower() == "true" or value == "1"

    @property
    def proxy_enabled(self) -> bool:
        return self.socks_host is not None and self.socks_port is not None

    def proxy_address(self) -> tuple[str, int] | None:
        """Return ``(host, port)`` of the SOCKS proxy, or None when not proxying.

        Raises:
            ConfigurationError: if the port is not an integer in 1..65535
        """
        if not self.proxy_enabled:
            return None
        try:
            port = int(self.socks_port)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid {SOCKS_PROXY_PORT}: {self.socks_port!r}"
            ) from e
        if not 0 < port < 65536:
            raise ConfigurationError(f"{SOCKS_PROXY_PORT} out of range: {port}")
        return self.socks_host, port

    @classmethod
    def from_properties(
        cls, properties: Mapping[str, str] | None = None
    ) -> "ProxyConfig":
        """Build the config from ``socksProxyHost``, ``socksProxyPort`` and
        ``ssl.insecure``, looked up in ``properties`` (``os.environ`` by default).
        """
        if properties is None:
            properties = os.environ
        return cls(
            socks_host=properties.get(SOCKS_PROXY_HOST),
            socks_port=properties.get(SOCKS_PROXY_PORT),
            insecure_tls=properties.get(SSL_INSECURE),
        )

"""
Client configuration.

One `ClientConfig` is created per process and passed to `TxFlowClient`; it
holds the node endpoint, chain, TTL and polling policy.
"""
import logging
import os
import urllib.parse
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .payload import DEFAULT_CHAIN_NAME, DEFAULT_TTL_MS
from .transport import STUB_SCHEME

logger = logging.getLogger(__name__)

DEFAULT_NODE_URL = "https://node.testnet.casper.network/rpc"
DEFAULT_CONFIRMATION_TIMEOUT = 100.0  # seconds
INSECURE_RPC_ENV = "TXFLOW_INSECURE_RPC"

_LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


def validate_node_url(url: str) -> None:
    """
    Validate the node URL is secure.

    `stub://` URLs select the in-memory ledger and are always allowed.

    Raises:
        ValueError: If the URL is invalid or uses plain HTTP to a remote host
    """
    if url.startswith(STUB_SCHEME):
        return

    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid node URL '{url}'")

    host = parsed.hostname or ""
    is_local = host in _LOCAL_HOSTS
    if parsed.scheme != "https" and not is_local:
        if os.environ.get(INSECURE_RPC_ENV) != "1":
            raise ValueError(
                f"Node URL must use HTTPS for security (got: {parsed.scheme}://). "
                f"Set {INSECURE_RPC_ENV}=1 to allow HTTP for development."
            )
        logger.warning(f"Using insecure node URL {url}")


@dataclass
class ClientConfig:
    """
    Settings shared by every submission of a client.

    Timeouts and poll intervals are in seconds; `ttl_ms` is in milliseconds.
    """
    node_url: str = DEFAULT_NODE_URL
    chain_name: str = DEFAULT_CHAIN_NAME
    ttl_ms: int = DEFAULT_TTL_MS
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    poll_interval: float = 1.0
    max_poll_interval: float = 10.0
    poll_backoff: float = 1.5
    retry_count: int = 3
    request_timeout: int = 30

    def __post_init__(self):
        validate_node_url(self.node_url)
        if not self.chain_name:
            raise ValueError("chain_name must be non-empty")
        if self.ttl_ms <= 0:
            raise ValueError(f"ttl_ms must be positive, got {self.ttl_ms}")
        if self.confirmation_timeout <= 0:
            raise ValueError(f"confirmation_timeout must be positive, got {self.confirmation_timeout}")
        if self.poll_interval <= 0 or self.max_poll_interval < self.poll_interval:
            raise ValueError("poll intervals must be positive and max_poll_interval >= poll_interval")
        if self.retry_count < 0:
            raise ValueError(f"retry_count must be >= 0, got {self.retry_count}")

    @property
    def uses_stub(self) -> bool:
        return self.node_url.startswith(STUB_SCHEME)

    @classmethod
    def from_env(cls, prefix: str = "TXFLOW_", **overrides) -> "ClientConfig":
        """
        Build a configuration from environment variables.

        Reads <prefix>NODE_URL, CHAIN_NAME, TTL_MS, CONFIRM_TIMEOUT,
        POLL_INTERVAL, MAX_POLL_INTERVAL, RETRY_COUNT and REQUEST_TIMEOUT.
        Keyword overrides win over the environment.

        Raises:
            ValueError: If a variable cannot be parsed
        """
        fields: Dict[str, Callable[[str], object]] = {
            "NODE_URL": str,
            "CHAIN_NAME": str,
            "TTL_MS": int,
            "CONFIRM_TIMEOUT": float,
            "POLL_INTERVAL": float,
            "MAX_POLL_INTERVAL": float,
            "RETRY_COUNT": int,
            "REQUEST_TIMEOUT": int,
        }
        names = {
            "CONFIRM_TIMEOUT": "confirmation_timeout",
        }

        values: Dict[str, object] = {}
        for env_name, parse in fields.items():
            raw: Optional[str] = os.environ.get(prefix + env_name)
            if raw is None or raw == "":
                continue
            try:
                values[names.get(env_name, env_name.lower())] = parse(raw)
            except ValueError:
                raise ValueError(f"Invalid value for {prefix + env_name}: {raw!r}")

        values.update(overrides)
        return cls(**values)

"""
Endpoint pool for RPC failover.

The pool is an immutable, ordered tuple of endpoint URLs (first entry is the
most preferred). Traversal state lives in an EndpointCursor owned by a single
run, so one pool can be shared read-only by concurrent requests.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from unstick.config import Settings, settings as default_settings
from unstick.services.redaction import redact_rpc_url


@dataclass(frozen=True)
class EndpointPool:
    """Ordered, immutable set of RPC endpoint URLs."""

    urls: Tuple[str, ...]

    def __post_init__(self):
        if not self.urls:
            raise ValueError("Endpoint pool requires at least one URL")

    @classmethod
    def from_urls(cls, urls: Iterable[str]) -> "EndpointPool":
        """Build a pool, dropping blanks and duplicates but keeping order."""
        seen = []
        for url in urls:
            url = (url or "").strip()
            if url and url not in seen:
                seen.append(url)
        return cls(urls=tuple(seen))

    def __len__(self) -> int:
        return len(self.urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self.urls)

    def __getitem__(self, index: int) -> str:
        return self.urls[index]

    def cursor(self) -> "EndpointCursor":
        return EndpointCursor(pool=self)

    def redacted(self) -> list[str]:
        return [redact_rpc_url(url) for url in self.urls]


@dataclass
class EndpointCursor:
    """Position in an EndpointPool. Only moves forward, never wraps."""

    pool: EndpointPool
    index: int = 0

    @property
    def current(self) -> str:
        return self.pool[self.index]

    @property
    def current_redacted(self) -> str:
        return redact_rpc_url(self.current)

    def has_next(self) -> bool:
        return self.index + 1 < len(self.pool)

    def advance(self) -> str:
        """Move to the next endpoint and return it."""
        if not self.has_next():
            raise IndexError("Endpoint pool exhausted")
        self.index += 1
        return self.current


def build_endpoint_pool(config: Optional[Settings] = None) -> EndpointPool:
    """Endpoint pool from settings: RPC2, RPC3, then RPC1, deduplicated."""
    config = config or default_settings
    return EndpointPool.from_urls(config.rpc_urls())

"""Credential redaction for RPC endpoint URLs."""

import re


REDACTED_SEGMENT = "***"

# Path segments of 20+ hex chars are API keys (Infura, QuickNode, ...)
_HEX_TOKEN_SEGMENT = re.compile(r"/[a-f0-9]{20,}(?=/|$|\?)", re.IGNORECASE)
# Long opaque path segments, e.g. Alchemy "/v2/<key>"
_OPAQUE_TOKEN_SEGMENT = re.compile(r"(?<=/)[A-Za-z0-9_-]{32,}(?=/|$|\?)")
_USERINFO = re.compile(r"^([a-z][a-z0-9+.-]*://)[^/@]+@", re.IGNORECASE)
_QUERY_SECRET = re.compile(
    r"([?&](?:api[-_]?key|apikey|key|token|access[-_]?token)=)[^&#]+",
    re.IGNORECASE,
)


def redact_rpc_url(url: str) -> str:
    """Replace credential material embedded in an RPC URL with a placeholder.

    The scheme and host are kept so operators can still tell endpoints apart.
    """
    if not url:
        return url
    redacted = _USERINFO.sub(rf"\1{REDACTED_SEGMENT}@", url)
    redacted = _HEX_TOKEN_SEGMENT.sub(f"/{REDACTED_SEGMENT}", redacted)
    redacted = _OPAQUE_TOKEN_SEGMENT.sub(REDACTED_SEGMENT, redacted)
    redacted = _QUERY_SECRET.sub(rf"\1{REDACTED_SEGMENT}", redacted)
    return redacted

"""HMAC-SHA256 request signing for Binance signed endpoints.

Binance verifies the signature over the exact bytes of the query string,
so the string returned here is the one that must be sent.
"""

import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote_plus, urlencode

DEFAULT_RECV_WINDOW_MS = 5000


def _now_ms() -> int:
    return int(time.time() * 1000)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote_form(value: str, safe: str = "", encoding=None, errors=None) -> str:
    # Browser form encoding: "*" stays literal, "~" is escaped.
    return quote_plus(value, safe="*", encoding=encoding, errors=errors).replace("~", "%7E")


def build_query_string(params: Mapping[str, Any]) -> str:
    """Serialize params as application/x-www-form-urlencoded.

    Insertion order is kept and None values are dropped. Escaping follows
    the WHATWG form serializer, so the string matches what a browser
    client would produce for the same params.
    """
    pairs = [(key, _stringify(value)) for key, value in params.items() if value is not None]
    return urlencode(pairs, quote_via=_quote_form)


def create_signature(query_string: str, secret_key: str) -> str:
    """Lowercase hex HMAC-SHA256 of ``query_string`` keyed by ``secret_key``."""
    return hmac.new(
        secret_key.encode("utf-8"), query_string.encode("utf-8"), hashlib.sha256
    ).hexdigest()


@dataclass(frozen=True)
class SignedRequest:
    """Signed query material for a single exchange call. Never persisted."""
    api_key: str
    signature: str
    timestamp: int
    query_string: str

    def signed_query(self) -> str:
        return f"{self.query_string}&signature={self.signature}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiKey": self.api_key,
            "signature": self.signature,
            "timestamp": self.timestamp,
            "queryString": self.query_string,
        }

    def __repr__(self) -> str:
        return f"SignedRequest(timestamp={self.timestamp}, query_string={self.query_string!r})"


def sign_request(
    params: Optional[Mapping[str, Any]],
    secret_key: str,
    api_key: str = "",
    timestamp: Optional[int] = None,
    recv_window: int = DEFAULT_RECV_WINDOW_MS,
) -> SignedRequest:
    """Sign ``params`` for a Binance signed endpoint.

    ``timestamp`` then ``recvWindow`` are appended after the caller's
    parameters before serialization.

    Args:
        params: Caller parameters, in the order they should be sent
        secret_key: Exchange API secret
        api_key: Exchange API key, echoed back for the X-MBX-APIKEY header
        timestamp: Epoch milliseconds (defaults to now)
        recv_window: Clock skew tolerance accepted by the exchange

    Returns:
        SignedRequest with the query string and its signature
    """
    ts = _now_ms() if timestamp is None else timestamp
    combined: Dict[str, Any] = dict(params or {})
    # Caller-supplied values never override the freshly generated ones.
    combined.pop("timestamp", None)
    combined.pop("recvWindow", None)
    combined.pop("signature", None)
    combined["timestamp"] = ts
    combined["recvWindow"] = recv_window

    query_string = build_query_string(combined)
    return SignedRequest(
        api_key=api_key,
        signature=create_signature(query_string, secret_key),
        timestamp=ts,
        query_string=query_string,
    )

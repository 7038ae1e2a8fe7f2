"""Binance integration: request signing, REST client and order validation."""

from foliovault.app.exchange.client import BinanceClient, create_public_client
from foliovault.app.exchange.signer import SignedRequest, build_query_string, create_signature, sign_request

__all__ = [
    "BinanceClient",
    "create_public_client",
    "SignedRequest",
    "build_query_string",
    "create_signature",
    "sign_request",
]

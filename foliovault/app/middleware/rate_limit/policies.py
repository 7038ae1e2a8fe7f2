"""Preset rate limit policies.

Each policy owns its own key namespace, so counters never collide
between policies even when they share an identifier.
"""

from foliovault.app.middleware.rate_limit.models import RateLimitPolicy

MINUTE_MS = 60 * 1000
FIFTEEN_MINUTES_MS = 15 * MINUTE_MS
HOUR_MS = 60 * MINUTE_MS

# Exchange proxy
BINANCE_PUBLIC = RateLimitPolicy("binance:public", 60, MINUTE_MS)    # per IP
BINANCE_USER = RateLimitPolicy("binance:user", 30, MINUTE_MS)        # per user
BINANCE_ORDER = RateLimitPolicy("binance:order", 10, MINUTE_MS)      # per user

# Account endpoints
SIGNUP = RateLimitPolicy("signup", 10, FIFTEEN_MINUTES_MS)                        # per IP
FORGOT_PASSWORD = RateLimitPolicy("forgot-password", 5, FIFTEEN_MINUTES_MS)       # per IP
RESET_PASSWORD = RateLimitPolicy("reset-password", 10, FIFTEEN_MINUTES_MS)        # per IP
SEND_VERIFICATION = RateLimitPolicy("send-verification", 5, FIFTEEN_MINUTES_MS)   # per IP
CHANGE_PASSWORD = RateLimitPolicy("change-password", 5, HOUR_MS)                  # per user
DELETE_ACCOUNT = RateLimitPolicy("delete-account", 5, HOUR_MS)                    # per user
DELETE_ACCOUNT_IP = RateLimitPolicy("delete-account-ip", 10, HOUR_MS)             # per IP
SUPPORT = RateLimitPolicy("support", 3, HOUR_MS)                                  # per user

ALL_POLICIES = (
    BINANCE_PUBLIC,
    BINANCE_USER,
    BINANCE_ORDER,
    SIGNUP,
    FORGOT_PASSWORD,
    RESET_PASSWORD,
    SEND_VERIFICATION,
    CHANGE_PASSWORD,
    DELETE_ACCOUNT,
    DELETE_ACCOUNT_IP,
    SUPPORT,
)

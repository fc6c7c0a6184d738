"""Runtime configuration, read once from the environment at startup."""
import enum
import logging
import os
from typing import NamedTuple

logger = logging.getLogger(__name__)

DEFAULT_SECRET = "dev-secret"


class OrderAccess(str, enum.Enum):
    # open: listing all orders and cancelling by orderId need no token
    OPEN = "open"
    # owner: both require a token and only touch the caller's orders
    OWNER = "owner"


class Settings(NamedTuple):
    database_url: str = "sqlite:///./storefront.db"
    port: int = 8080
    jwt_secret: str = DEFAULT_SECRET
    token_ttl_seconds: int = 60 * 60  # 1 hour
    static_dir: str = "build"
    order_access: OrderAccess = OrderAccess.OPEN
    log_level: str = "INFO"


def load_settings() -> Settings:
    secret = os.getenv("JWT_SECRET") or DEFAULT_SECRET
    if secret == DEFAULT_SECRET:
        logger.warning("JWT_SECRET is not set; tokens are signed with the development secret")
    return Settings(
        database_url=os.getenv("DATABASE_URL", Settings._field_defaults["database_url"]),
        port=int(os.getenv("PORT", "8080")),
        jwt_secret=secret,
        token_ttl_seconds=int(os.getenv("TOKEN_TTL_SECONDS", "3600")),
        static_dir=os.getenv("STATIC_DIR", "build"),
        order_access=OrderAccess(os.getenv("ORDER_ACCESS", "open").lower()),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

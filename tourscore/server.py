import argparse
import logging
import os
from dataclasses import dataclass, field

import uvicorn

from tourscore.settings import load_settings

logger = logging.getLogger(__name__)

APP_MODULE = "tourscore.main:app"
DEFAULT_PORT = 8000


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    log_level: str = "info"
    ssl: dict[str, str] = field(default_factory=dict)


def _port_from_env() -> int:
    for key in ("APP_PORT", "PORT"):
        value = os.getenv(key)
        if not value:
            continue
        try:
            return int(value)
        except ValueError:
            logger.warning("Ignoring %s=%s (not an integer)", key, value)
    return DEFAULT_PORT


def _ssl_from_env() -> dict[str, str]:
    cert = os.getenv("SSL_CERT_FILE")
    key = os.getenv("SSL_KEY_FILE")
    if not cert and not key:
        return {}
    if not cert or not key:
        logger.warning("HTTPS needs both SSL_CERT_FILE and SSL_KEY_FILE; serving plain HTTP")
        return {}
    options = {"ssl_certfile": cert, "ssl_keyfile": key}
    password = os.getenv("SSL_KEY_PASSWORD")
    if password:
        options["ssl_keyfile_password"] = password
    return options


def load_server_config() -> ServerConfig:
    return ServerConfig(
        host=os.getenv("APP_HOST", "0.0.0.0"),
        port=_port_from_env(),
        log_level=os.getenv("UVICORN_LOG_LEVEL", "info").lower(),
        ssl=_ssl_from_env(),
    )


def main() -> None:
    config = load_server_config()
    parser = argparse.ArgumentParser(description="Serve the tour scoring API.")
    parser.add_argument("--host", default=config.host)
    parser.add_argument("--port", type=int, default=config.port)
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only).")
    args = parser.parse_args()

    logging.basicConfig(
        level=load_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    scheme = "https" if config.ssl else "http"
    logger.info("Serving tour scoring API on %s://%s:%s", scheme, args.host, args.port)
    uvicorn.run(
        APP_MODULE,
        host=args.host,
        port=args.port,
        log_level=config.log_level,
        reload=args.reload,
        **config.ssl,
    )


if __name__ == "__main__":
    main()

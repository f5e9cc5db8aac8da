import logging
from typing import Any

import uvicorn

from cupscore.settings import Settings, load_settings

logger = logging.getLogger(__name__)
APP_MODULE = "cupscore.main:app"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def uvicorn_options(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for ``uvicorn.run``; TLS only when both files are set."""
    options: dict[str, Any] = {
        "host": settings.host,
        "port": settings.port,
        "log_level": settings.log_level.lower(),
    }
    if settings.ssl_certfile and settings.ssl_keyfile:
        options.update(ssl_certfile=settings.ssl_certfile, ssl_keyfile=settings.ssl_keyfile)
        logger.info("Serving the scoreboard over HTTPS with %s", settings.ssl_certfile)
    elif settings.ssl_certfile or settings.ssl_keyfile:
        logger.warning("TLS needs both SSL_CERT_FILE and SSL_KEY_FILE; serving plain HTTP.")
    return options


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(APP_MODULE, **uvicorn_options(settings))


if __name__ == "__main__":
    main()

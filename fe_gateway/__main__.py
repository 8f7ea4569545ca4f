"""Entry point: print the banner, resolve configuration and start uvicorn."""

import logging
import logging.config

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from fe_gateway import __version__
from fe_gateway.vars import ENV_PREFIX, HOST, LOG_LEVEL, resolve

logger = logging.getLogger("uvicorn.error")

RULE = "=" * 59


def intro() -> str:
    return "\n".join(
        [
            RULE,
            f"                    Front End v {__version__}",
            RULE,
            "   Please use env variables for configuration:",
            f"       {ENV_PREFIX}PORT=port number",
            f"       {ENV_PREFIX}WORKERS=workers for server",
            f"       {ENV_PREFIX}CLIENT_URL=url of called service",
            "-" * 59,
            "Starting configuration......",
        ]
    )


def main():
    logging.config.dictConfig(LOGGING_CONFIG)
    logger.setLevel(LOG_LEVEL.upper())
    print(intro())

    config = resolve()

    print("-" * 59)
    print("Starting server.... Press Ctrl-C to stop it.")
    logger.debug(
        f"Starting server on {HOST}:{config.port} with {config.workers} workers"
    )

    uvicorn.run(
        "fe_gateway.server:build_app",
        factory=True,
        host=HOST,
        port=config.port,
        workers=config.workers,
        log_level=LOG_LEVEL,
    )


if __name__ == "__main__":
    main()

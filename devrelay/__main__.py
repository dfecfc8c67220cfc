"""Run the relay under uvicorn: python -m devrelay"""

from __future__ import annotations

import uvicorn

from devrelay.config.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "devrelay.gateway.app:app",
        host=settings.gateway.host,
        port=settings.gateway.port,
        log_level=settings.logging.level.lower(),
        timeout_graceful_shutdown=0,
    )


if __name__ == "__main__":
    main()

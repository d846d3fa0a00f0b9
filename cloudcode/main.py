"""
Cloud Code Editor API entry point.

    uvicorn cloudcode.main:app
    cloudcode-api            (console script)
"""

import uvicorn

from cloudcode.app_factory import create_app
from cloudcode.config import get_settings
from cloudcode.logging_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

app = create_app(settings)


def main() -> None:
    uvicorn.run(
        "cloudcode.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

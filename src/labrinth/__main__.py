"""Entry point for the standalone API process."""

import uvicorn

from labrinth.config import settings
from labrinth.main import app


def main() -> None:
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()

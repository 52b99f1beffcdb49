"""TokenWatch - application entry point."""

import uvicorn

from tokenwatch.api.app import create_app
from tokenwatch.config import get_settings

# Create the app instance
app = create_app()


def run() -> None:
    """Run the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "tokenwatch.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()

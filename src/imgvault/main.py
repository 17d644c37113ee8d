"""
Entry point for the imgvault HTTP service.

Run with ``imgvault`` (console script) or ``uvicorn imgvault.main:app``.
"""

import uvicorn

from imgvault.api import create_app
from imgvault.config import get_env
from imgvault.logging_config import configure_structured_logging, get_logger

configure_structured_logging()
logger = get_logger(__name__)

app = create_app()


def main() -> None:
    """Serve the API on ``HOST``:``PORT``."""
    host = str(get_env("HOST", "127.0.0.1"))
    port = int(get_env("PORT", 3000, int))
    logger.info("server_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()

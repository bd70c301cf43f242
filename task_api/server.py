"""Entry point: run the task API with uvicorn on port 3000.

Usage:
    python -m task_api.server
"""
import logging
import os

import uvicorn

from task_api.logging_setup import setup_logging
from task_api.main import HOST, PORT, app

logger = logging.getLogger(__name__)


class TaskServer(uvicorn.Server):
    """uvicorn server that reports the address once the socket is bound."""

    async def startup(self, sockets=None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            logger.info("Server is running on http://localhost:%d", self.config.port)


def main() -> None:
    setup_logging(os.getenv("LOG_LEVEL", "INFO").upper())
    # log_config=None keeps uvicorn on our handlers
    config = uvicorn.Config(app, host=HOST, port=PORT, log_config=None)
    TaskServer(config).run()


if __name__ == "__main__":
    main()

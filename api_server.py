#!/usr/bin/env python
"""
Run the Elevora API with uvicorn
"""
import logging
import sys

import uvicorn

from elevora.app import app
from elevora.config import config

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    logger.info(f"Starting Elevora API server on port {config.PORT}")
    logger.info(f"Health check endpoint: http://0.0.0.0:{config.PORT}/health")

    try:
        uvicorn.run(
            app,
            host="0.0.0.0",
            port=config.PORT,
            log_config=None,  # Keep the structured logging set up by the app
            access_log=True,
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}", exc_info=True)
        sys.exit(1)

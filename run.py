#!/usr/bin/env python3
"""
SecureBank Entry Point

Starts the FastAPI server with the configured storage backend.
"""

import sys

from securebank.api import run_server
from securebank.config import get_config
from securebank.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    logger.info(f"Starting SecureBank API on http://{config.api_host}:{config.api_port}")

    try:
        run_server(host=config.api_host, port=config.api_port, debug=False)
    except KeyboardInterrupt:
        logger.info("Shutting down SecureBank API")
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)

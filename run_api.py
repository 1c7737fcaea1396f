#!/usr/bin/env python3
"""
Script to run the Book Library API server.
"""

import uvicorn

from api.config import get_config
from utilities.logger import setup_logging, get_logger


def main():
    """Run the API server."""
    config = get_config()
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )

    logger = get_logger(__name__)
    logger.info(
        "Server starting",
        host=config.host,
        port=config.port,
        debug=config.debug,
        database=config.safe_database_url()
    )

    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()

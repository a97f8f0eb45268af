#!/usr/bin/env python3
"""
Run the Bookshelf Social API under uvicorn.

Settings come from the environment or .env (see api/config.py); an
optional port argument overrides the configured one:

    python run_api.py [port]
"""

import sys
from pathlib import Path

import uvicorn

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from api.config import config
from utilities.logger import get_logger, setup_logging


def main():
    """Run the API server."""
    port = int(sys.argv[1]) if len(sys.argv) > 1 else config.port

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )
    get_logger(__name__).info(
        "Starting API server",
        title=config.api_title,
        host=config.host,
        port=port,
        database=config.mongodb_database,
        reload=config.debug
    )

    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=False
    )


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Script to run the Library Catalog API server.
"""

import uvicorn
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from api.config import config as api_config
from utilities.config import config
from utilities.logger import setup_logging


def main():
    """Run the API server."""
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    print("🚀 Starting Library Catalog API Server")
    print(f"📡 Host: {api_config.host}")
    print(f"🔌 Port: {api_config.port}")
    print(f"🌐 Debug: {api_config.debug}")
    print(f"📚 Database: {config.mongodb_database}")
    print(f"⏳ Token lifetime: {config.token_ttl_minutes} minutes")
    print("=" * 50)

    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=api_config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()

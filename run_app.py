#!/usr/bin/env python3
"""
Simple runner script for the Flask application.
This script ensures the correct Python path is set and runs the app.
"""

import sys
from pathlib import Path

# Add the current directory to Python path
current_dir = Path(__file__).parent
sys.path.insert(0, str(current_dir))

from config_manager import get_app_config
from quota_policy.logging_config import setup_logging, stop_logging
from policy_app.main import create_app


def main():
    app_config = get_app_config()
    setup_logging(debug=app_config.debug)

    app = create_app()
    print("🚀 Starting policy application...")
    print(f"📁 Working directory: {current_dir}")

    try:
        app.run(
            host=app_config.host,
            port=app_config.port,
            debug=app_config.debug
        )
    finally:
        app.extensions["policy_sessions"].close_all()
        stop_logging()


if __name__ == "__main__":
    main()

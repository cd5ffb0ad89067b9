#!/usr/bin/env python3
"""
Finance Core Entry Point

Starts the FastAPI server on the configured host and port.
"""

import sys

from finance_core.api import run_server
from finance_core.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Finance Core API...")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(debug="--reload" in sys.argv)
    except KeyboardInterrupt:
        print("\nShutting down Finance Core API...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)

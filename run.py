#!/usr/bin/env python3
"""
Retail Ledger Entry Point

Starts the FastAPI server with an in-memory ledger. Host and port come from
LEDGER_API_HOST / LEDGER_API_PORT (default 0.0.0.0:8090).
"""

import sys

from retail_ledger.api import run_server
from retail_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Retail Ledger...")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print("State is held in memory and is lost on exit")
    print()

    try:
        run_server()
    except KeyboardInterrupt:
        print("\nShutting down Retail Ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)

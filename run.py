#!/usr/bin/env python3
"""
Vanstra Ledger Entry Point

Starts the FastAPI server (port 8090 unless VANSTRA_API_PORT is set).
"""

import sys

from vanstra_ledger.api import run_server
from vanstra_ledger.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("🏦 Starting Vanstra Ledger...")
    print(f"💾 Storage: {config.storage_backend} ({config.storage_path})")
    print("💰 All balances use Decimal precision")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server()
    except KeyboardInterrupt:
        print("\n👋 Shutting down Vanstra Ledger...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)

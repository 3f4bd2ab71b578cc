#!/usr/bin/env python3
"""
Serve the order tracking API locally with uvicorn.

Usage:
    python run_local.py [--port 8000] [--reload]

Settings come from the environment or a .env file in the project root
(see .env.example). Order hooks need DynamoDB access for the delivery log.
"""

import argparse
from pathlib import Path

import uvicorn

PROJECT_ROOT = Path(__file__).parent

DELIVERY_SETTINGS = (
    "MATOMO_URL",
    "SITE_ID",
    "AUTH_TOKEN",
    "WOOCOMMERCE_URL",
    "WOOCOMMERCE_CONSUMER_KEY",
    "WOOCOMMERCE_CONSUMER_SECRET",
)


def main():
    parser = argparse.ArgumentParser(description="Run the Matomo order tracking API locally")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Restart on source changes")
    args = parser.parse_args()

    if not (PROJECT_ROOT / ".env").exists():
        print("No .env file found; deliveries are skipped until these are set:")
        for name in DELIVERY_SETTINGS:
            print(f"  {name}")

    uvicorn.run(
        "woo_matomo.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_dirs=[str(PROJECT_ROOT / "src")] if args.reload else None
    )


if __name__ == "__main__":
    main()

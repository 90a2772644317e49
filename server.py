"""
Server script
"""
import argparse
import asyncio
import logging
import sys

import uvicorn

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    if sys.platform.startswith("win"):
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    # Parse command line arguments
    parser = argparse.ArgumentParser(description="Run the back-office API server")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Host to bind the server to (default: localhost)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind the server to (default: 8000)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker processes; each keeps its own fallback cache (default: 1)",
    )

    args = parser.parse_args()

    try:
        logger.info(f"Starting server on {args.host}:{args.port}")
        uvicorn.run(
            "backoffice.server.app:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=None if args.reload else args.workers,
            log_level=args.log_level,
            timeout_graceful_shutdown=30,
        )
    except Exception as e:
        logger.error(f"Failed to start server: {str(e)}")
        sys.exit(1)

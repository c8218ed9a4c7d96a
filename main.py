#!/usr/bin/env python3
"""Main entry point for the ping-pong tournament engine."""

import logging
import sys

from config.settings import AppConfig, get_default_config


def setup_logging(level: str = "INFO"):
    """Configure logging for the web server."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def print_usage():
    """Print usage information for local development."""
    print("Ping-Pong Tournament Engine")
    print("=" * 40)
    print("Available entry points:")
    print()
    print("Web Server (API + WebSocket):")
    print("   python main.py --web")
    print()
    print("Configuration is read from tournament_config.json;")
    print("DATABASE_PATH, ADMIN_PIN, LOG_LEVEL and PORT override it.")
    print()


def start_web_server(config: AppConfig):
    """Start the FastAPI web server."""
    setup_logging(config.system.log_level)

    import uvicorn

    from web.api import create_app

    port = config.system.port

    print("Starting Ping-Pong Tournament Server...")
    print(f"API Documentation: http://localhost:{port}/docs")
    print(f"WebSocket: ws://localhost:{port}/v1/ws/matches/{{id}}")

    uvicorn.run(
        create_app(config),
        host=config.system.host,
        port=port,
        log_level=config.system.log_level.lower(),
        access_log=True,
    )


def main():
    """Main entry point."""
    if "--help" in sys.argv or "-h" in sys.argv:
        print_usage()
    elif "--web" in sys.argv:
        start_web_server(get_default_config())
    else:
        print_usage()
        print("Tip: Use 'python main.py --web' to start the server")


if __name__ == "__main__":
    main()

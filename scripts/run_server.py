"""Script to launch the chat proxy server."""

from __future__ import annotations

import argparse
import logging
import os
import sys

import uvicorn

# Ensure src/ is on sys.path (so imports work when run from a checkout)
SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from chat_proxy.config import Settings, load_settings  # noqa: E402

logger = logging.getLogger("chat_proxy.run_server")


def worker_count(settings: Settings, requested: int) -> int:
    """Cap workers at one while the on-disk chat room is in use.

    DiskChatRoom serializes writes with an in-process lock only; separate
    worker processes would interleave read-modify-write cycles and drop saves.
    """
    if requested > 1 and settings.storage.data_dir:
        logger.warning(
            "Disk chat room at %s supports a single process; running 1 worker instead of %d",
            settings.storage.data_dir,
            requested,
        )
        return 1
    return max(requested, 1)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the chat proxy server.")
    parser.add_argument(
        "--host",
        type=str,
        default=os.environ.get("HOST", "127.0.0.1"),
        help="Host to bind the server to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", "8000")),
        help="Port to bind the server to (default: 8000)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML config file (default: $CHAT_PROXY_CONFIG or config/default.yaml)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (default: off)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=int(os.environ.get("WORKERS", "1")),
        help="Number of worker processes (default: 1; forced to 1 while storage.data_dir is set)",
    )
    args = parser.parse_args()

    if args.config:
        # Workers and the reloader rebuild the app from the factory, so pass the path via env.
        os.environ["CHAT_PROXY_CONFIG"] = args.config
    settings = load_settings(args.config)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "chat_proxy.server:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=worker_count(settings, args.workers),
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

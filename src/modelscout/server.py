"""Uvicorn startup for the modelscout service."""

from __future__ import annotations

import argparse

from modelscout.config import configure_logging, load_settings
from modelscout.utils.paths import find_project_root


def run_server(host: str = "127.0.0.1", port: int = 8742, reload: bool = False, log_level: str = "info") -> None:
    """Serve the app factory with uvicorn."""
    import uvicorn

    uvicorn.run(
        "modelscout.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


def main() -> None:
    """Start the modelscout server."""
    parser = argparse.ArgumentParser(description="modelscout server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8742, help="Bind port (default: 8742)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    args = parser.parse_args()

    settings = load_settings(find_project_root())
    configure_logging(settings.log_level)
    run_server(args.host, args.port, reload=args.reload, log_level=str(settings.log_level).lower())


if __name__ == "__main__":
    main()

"""Console entry point that serves the app with uvicorn."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from tasksplit.config import load_config
from tasksplit.main import create_app

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 18180


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run the tasksplit service.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(config), host=args.host, port=args.port)


if __name__ == "__main__":
    main()

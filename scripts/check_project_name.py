"""
Check that a project name posted to a live API can be read back.
"""

from __future__ import annotations

import argparse
import logging
import os

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_NAME = "Test Client Lee Rule"


def check_project_name(api_url: str, name: str) -> bool:
    save = requests.post(f"{api_url}/project", json={"name": name}, timeout=REQUEST_TIMEOUT)
    save.raise_for_status()
    logger.info("Save response: %s", save.json())

    loaded = requests.get(f"{api_url}/project", timeout=REQUEST_TIMEOUT)
    loaded.raise_for_status()
    payload = loaded.json()
    logger.info("Loaded project name: %s", payload)
    return payload.get("name") == name


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Round-trip the project name")
    parser.add_argument(
        "--api-url",
        type=str,
        default=os.getenv("API_URL", DEFAULT_API_URL),
        help="Base URL of the API, including the /api prefix",
    )
    parser.add_argument("--name", type=str, default=DEFAULT_NAME)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    try:
        persisted = check_project_name(args.api_url.rstrip("/"), args.name)
    except requests.RequestException as exc:
        logger.error("Check failed: %s", exc)
        return 1
    if persisted:
        logger.info("Project name persisted")
        return 0
    logger.error("Project name did NOT persist")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())

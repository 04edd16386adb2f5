"""
Upload the demo team and tasks to a running status tracker API.

Unlike the start-up seeder, this goes through the public endpoints and assigns
each demo task to a randomly chosen team member.
"""

from __future__ import annotations

import argparse
import logging
import os
import random
import sys
from pathlib import Path

import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from status_backend.seed import DEMO_TASKS, DEMO_TEAM

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
DEFAULT_API_URL = "http://localhost:5000/api"


def add_team_members(api_url: str) -> int:
    added = 0
    for member in DEMO_TEAM:
        response = requests.post(f"{api_url}/invite", json=member, timeout=REQUEST_TIMEOUT)
        if response.ok:
            logger.info("Added team member: %s", member["username"])
            added += 1
        else:
            logger.error("Failed to add %s: %s", member["username"], response.text)
    return added


def get_team(api_url: str) -> list[dict]:
    response = requests.get(f"{api_url}/team", timeout=REQUEST_TIMEOUT)
    return response.json() if response.ok else []


def add_tasks(api_url: str, team: list[dict], rng: random.Random) -> int:
    added = 0
    for goal, comments, execute, stage, _ in DEMO_TASKS:
        assigned_to = rng.choice(team)["username"]
        payload = {
            "phase": stage,
            "goal": goal,
            "need": "",
            "comments": comments,
            "execute": execute,
            "stage": stage,
            "commentArea": "",
            "assigned_to": assigned_to,
        }
        response = requests.post(f"{api_url}/phases", json=payload, timeout=REQUEST_TIMEOUT)
        if response.ok:
            logger.info("Added task: %s (assigned to %s)", goal, assigned_to)
            added += 1
        else:
            logger.error("Failed to add task %s: %s", goal, response.text)
    return added


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Upload demo data to a live API")
    parser.add_argument(
        "--api-url",
        type=str,
        default=os.getenv("SEED_API_URL", DEFAULT_API_URL),
        help="Base URL of the API, including the /api prefix",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for task assignment",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    api_url = args.api_url.rstrip("/")
    add_team_members(api_url)
    team = get_team(api_url)
    if not team:
        logger.error("No team members found, aborting task creation.")
        return 1
    add_tasks(api_url, team, random.Random(args.seed))
    logger.info("All demo data uploaded!")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

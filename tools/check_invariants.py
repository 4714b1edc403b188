#!/usr/bin/env python3
"""Market parameter invariant checks against config/market_params.json."""

import json
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
PARAMS_PATH = ROOT / "config" / "market_params.json"
REQUIRED_KEYS = ("DEFAULT_CADENCE_SECONDS", "POOL_ADDRESS", "EVENT_LOG_PATH")


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_params(params: dict) -> list[str]:
    errors: list[str] = []
    for key in REQUIRED_KEYS:
        if key not in params:
            errors.append(f"missing parameter: {key}")
    if errors:
        return errors

    cadence = params["DEFAULT_CADENCE_SECONDS"]
    if isinstance(cadence, bool) or not isinstance(cadence, int):
        errors.append(f"DEFAULT_CADENCE_SECONDS must be an integer, got {cadence!r}")
    elif cadence <= 0:
        errors.append("DEFAULT_CADENCE_SECONDS must be > 0")

    pool = params["POOL_ADDRESS"]
    if not isinstance(pool, str) or not pool.strip():
        errors.append("POOL_ADDRESS must be a non-blank string")

    log_path = params["EVENT_LOG_PATH"]
    if log_path is not None and not isinstance(log_path, str):
        errors.append("EVENT_LOG_PATH must be null or a path string")
    return errors


def check(params_path: Path = PARAMS_PATH) -> int:
    errors = check_params(load_json(params_path))
    if errors:
        print("Invariant check failed:")
        for error in errors:
            print(f"- {error}")
        return 1
    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    sys.exit(check())

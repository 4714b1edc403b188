"""Market configuration — loaded from config/market_params.json.

Environment overrides (read from the process environment, after loading
an optional ``.env`` file at the project root):

    STREAMLEDGER_DEFAULT_CADENCE_SECONDS
    STREAMLEDGER_POOL_ADDRESS
    STREAMLEDGER_EVENT_LOG_PATH
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from streamledger.engine.accrual import DEFAULT_CADENCE_SECONDS

ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_DIR = ROOT / "config"
PARAMS_FILE = "market_params.json"
ENV_PREFIX = "STREAMLEDGER_"


@dataclass(frozen=True)
class MarketConfig:
    """Runtime parameters shared by both marketplace ledgers."""

    default_cadence_seconds: int = DEFAULT_CADENCE_SECONDS
    pool_address: str = "streamledger-pool"
    event_log_path: Optional[Path] = None

    def __post_init__(self) -> None:
        if not isinstance(self.default_cadence_seconds, int) or self.default_cadence_seconds <= 0:
            raise ValueError(
                f"DEFAULT_CADENCE_SECONDS must be a positive integer, "
                f"got {self.default_cadence_seconds!r}"
            )
        if not self.pool_address or not self.pool_address.strip():
            raise ValueError("POOL_ADDRESS must not be blank")

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> MarketConfig:
        log_path = params.get("EVENT_LOG_PATH")
        return cls(
            default_cadence_seconds=params.get("DEFAULT_CADENCE_SECONDS", DEFAULT_CADENCE_SECONDS),
            pool_address=params.get("POOL_ADDRESS", "streamledger-pool"),
            event_log_path=Path(log_path) if log_path else None,
        )

    @classmethod
    def from_config_dir(cls, config_dir: Path = DEFAULT_CONFIG_DIR) -> MarketConfig:
        """Load from ``<config_dir>/market_params.json``."""
        params = json.loads((config_dir / PARAMS_FILE).read_text(encoding="utf-8"))
        return cls.from_params(params)

    @classmethod
    def from_env(
        cls,
        config_dir: Path = DEFAULT_CONFIG_DIR,
        env_file: Optional[Path] = None,
    ) -> MarketConfig:
        """Load the JSON params, then apply STREAMLEDGER_* overrides.

        Values already present in the process environment win over the
        ``.env`` file.
        """
        load_dotenv(env_file or ROOT / ".env")
        params = json.loads((config_dir / PARAMS_FILE).read_text(encoding="utf-8"))

        cadence = os.getenv(f"{ENV_PREFIX}DEFAULT_CADENCE_SECONDS")
        if cadence is not None:
            try:
                params["DEFAULT_CADENCE_SECONDS"] = int(cadence)
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}DEFAULT_CADENCE_SECONDS must be an integer, got {cadence!r}"
                ) from None
        pool = os.getenv(f"{ENV_PREFIX}POOL_ADDRESS")
        if pool is not None:
            params["POOL_ADDRESS"] = pool
        log_path = os.getenv(f"{ENV_PREFIX}EVENT_LOG_PATH")
        if log_path is not None:
            params["EVENT_LOG_PATH"] = log_path or None
        return cls.from_params(params)

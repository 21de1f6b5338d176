"""Environment-driven settings."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ID_STRATEGIES = ("sequence", "uuid")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the environment."""

    storage_path: Optional[str] = None  # None keeps everything in memory
    id_strategy: str = "sequence"
    log_level: str = "INFO"
    log_format: str = "json"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        storage_path = os.environ.get(
            "OFFER_STORAGE_PATH",
            str(Path(__file__).parent.parent / "data" / "offers.json"),
        )
        id_strategy = os.environ.get("OFFER_ID_STRATEGY", "sequence").lower()
        if id_strategy not in ID_STRATEGIES:
            raise ValueError(
                f"OFFER_ID_STRATEGY must be one of {', '.join(ID_STRATEGIES)}, got '{id_strategy}'"
            )

        return cls(
            storage_path=storage_path or None,
            id_strategy=id_strategy,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
            log_format=os.environ.get("LOG_FORMAT", "json").lower(),
            host=os.environ.get("OFFER_ENGINE_HOST", "127.0.0.1"),
            port=int(os.environ.get("OFFER_ENGINE_PORT", "8000")),
        )

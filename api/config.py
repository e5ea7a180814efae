"""
API server configuration.
"""

import os
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

load_dotenv()


@dataclass
class ApiConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"

    @classmethod
    def from_env(cls) -> "ApiConfig":
        return cls(
            host=os.environ.get("DEVTRACKER_API_HOST", "0.0.0.0"),
            port=int(os.environ.get("DEVTRACKER_API_PORT", "8000")),
            log_level=os.environ.get("DEVTRACKER_API_LOG_LEVEL", "info"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"host": self.host, "port": self.port, "log_level": self.log_level}

import os
from typing import Dict, Final


class _Config:
    def __init__(self) -> None:
        # Gemini
        self.gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        self.gemini_fast_model: str = os.getenv("GEMINI_FAST_MODEL", "gemini-2.5-flash-lite")
        self.default_model: str = os.getenv("DEFAULT_MODEL", "travel-default")
        self.repair_model: str = os.getenv("REPAIR_MODEL", "travel-default")
        self.suggest_model: str = os.getenv("SUGGEST_MODEL", "travel-default")

        # Output smoothing for the response pass
        try:
            self.smooth_delay_ms: int = int(os.getenv("SMOOTH_DELAY_MS", "15"))
        except ValueError:
            self.smooth_delay_ms = 15

        # HTTP behavior
        try:
            self.http_timeout_sec: float = float(os.getenv("HTTP_TIMEOUT_SEC", "15"))
        except ValueError:
            self.http_timeout_sec = 15.0

        # Image proxy refuses upstream bodies above this size
        try:
            self.proxy_max_image_bytes: int = int(os.getenv("PROXY_MAX_IMAGE_BYTES", str(10 * 1024 * 1024)))
        except ValueError:
            self.proxy_max_image_bytes = 10 * 1024 * 1024

        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def model_aliases(self) -> Dict[str, str]:
        return {
            "travel-default": self.gemini_model,
            "travel-fast": self.gemini_fast_model,
        }


CONFIG: Final[_Config] = _Config()

import os
from typing import Final


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


class _Config:
    def __init__(self) -> None:
        # Security / limits
        self.api_key: str | None = os.getenv("TOOLS_API_KEY")
        self.rate_limit: str = os.getenv("TOOLS_RATE_LIMIT", "30/minute")

        # HTTP behavior
        self.user_agent: str = os.getenv("TOOLS_USER_AGENT", "TravelPlanner-Tools")
        self.http_timeout_sec: float = _float_env("HTTP_TIMEOUT_SEC", 10.0)
        self.image_check_timeout_sec: float = _float_env("IMAGE_CHECK_TIMEOUT_SEC", 5.0)
        # Same-origin proxy used when a direct image check is forbidden
        self.image_proxy_url: str = os.getenv("IMAGE_PROXY_URL", "http://localhost:3002/api/proxy-image")

        # Provider credentials
        self.tavily_api_key: str | None = os.getenv("TAVILY_API_KEY")
        self.openweather_api_key: str | None = os.getenv("OPENWEATHER_API_KEY")
        self.google_maps_api_key: str | None = os.getenv("GOOGLE_MAPS_API_KEY")
        self.mapbox_access_token: str | None = os.getenv("MAPBOX_ACCESS_TOKEN")
        self.tripadvisor_api_key: str | None = os.getenv("TRIPADVISOR_API_KEY")
        self.aviation_stack_api_key: str | None = os.getenv("AVIATION_STACK_API_KEY")

        # External API bases
        self.tavily_base: str = os.getenv("TAVILY_BASE", "https://api.tavily.com")
        self.openweather_base: str = os.getenv("OPENWEATHER_BASE", "https://api.openweathermap.org/data/2.5")
        self.google_maps_base: str = os.getenv("GOOGLE_MAPS_BASE", "https://maps.googleapis.com/maps/api")
        self.mapbox_base: str = os.getenv("MAPBOX_BASE", "https://api.mapbox.com")
        self.tripadvisor_base: str = os.getenv("TRIPADVISOR_BASE", "https://api.content.tripadvisor.com/api/v1")
        self.aviation_stack_base: str = os.getenv("AVIATION_STACK_BASE", "https://api.aviationstack.com/v1")
        # TripAdvisor keys can be restricted to a referring domain
        self.tripadvisor_referer: str = os.getenv("TRIPADVISOR_REFERER", "")


CONFIG: Final[_Config] = _Config()

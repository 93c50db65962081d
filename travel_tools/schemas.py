from typing import List, Literal, Optional

from pydantic import BaseModel, Field


Topic = Literal["general", "news", "finance"]
SearchDepth = Literal["basic", "advanced"]


class WebSearchParams(BaseModel):
    queries: List[str] = Field(
        ...,
        min_length=1,
        description="Array of search queries to look up on the web. Default is 5 to 10 queries.",
    )
    max_results: List[int] = Field(
        default_factory=lambda: [10],
        description="Array of maximum number of results to return per query. Default is 10.",
    )
    topics: List[Topic] = Field(
        default_factory=lambda: ["general"],
        description="Array of topic types to search for. Default is general.",
    )
    search_depth: List[SearchDepth] = Field(
        default_factory=lambda: ["basic"],
        description="Array of search depths to use. Default is basic. Use advanced for more detailed results.",
    )
    exclude_domains: List[str] = Field(
        default_factory=list,
        description="A list of domains to exclude from all search results. Default is an empty list.",
    )


class SearchResultItem(BaseModel):
    url: str
    title: str = ""
    content: str = ""
    raw_content: Optional[str] = None
    published_date: Optional[str] = None


class WeatherParams(BaseModel):
    lat: float = Field(..., ge=-90, le=90, description="The latitude of the location.")
    lon: float = Field(..., ge=-180, le=180, description="The longitude of the location.")


class FindPlaceParams(BaseModel):
    query: str = Field(..., description="The search query for forward geocoding")
    coordinates: List[float] = Field(
        ...,
        min_length=2,
        max_length=2,
        description="Array of [latitude, longitude] for reverse geocoding",
    )


class TextSearchParams(BaseModel):
    query: str = Field(..., description="The search query (e.g., '123 main street').")
    location: Optional[str] = Field(
        None,
        description="The location to center the search (e.g., '42.3675294,-71.186966').",
    )
    radius: Optional[int] = Field(
        None,
        gt=0,
        le=50000,
        description="The radius of the search area in meters (max 50000).",
    )


class NearbySearchParams(BaseModel):
    location: str = Field(..., description="The location name given by user.")
    latitude: float = Field(..., ge=-90, le=90, description="The latitude of the location.")
    longitude: float = Field(..., ge=-180, le=180, description="The longitude of the location.")
    type: str = Field(..., description="The type of place to search for (restaurants, hotels, attractions, geos).")
    radius: int = Field(30000, gt=0, le=50000, description="The radius in meters (max 50000, default 30000).")


class TrackFlightParams(BaseModel):
    flight_number: str = Field(..., min_length=2, description="The flight number to track")


class DateTimeParams(BaseModel):
    pass


class TranslateParams(BaseModel):
    text: str = Field(..., description="The text to translate.")
    to: str = Field(..., description="The language to translate to (e.g., 'fr' for French).")

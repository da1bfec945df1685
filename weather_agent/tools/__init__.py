from .date_time import get_date_time
from .weather_lookup import WeatherLookupTool

__all__ = ["get_date_time", "WeatherLookupTool"]

from .base import WeatherAdapter, WeatherAdapterError
from .visual_crossing import VisualCrossingWeatherAdapter

__all__ = ["WeatherAdapter", "WeatherAdapterError", "VisualCrossingWeatherAdapter"]

"""AQI reading model in the shape the search UI renders."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel

from app.models.location import GeoLocation
from app.models.open_meteo import AirQuality, CurrentWeather

Source = Literal["api", "cache"]


class Measurement(BaseModel):
    v: Optional[float] = None


class Iaqi(BaseModel):
    """Per-pollutant values plus temperature."""

    pm25: Measurement
    pm10: Measurement
    o3: Measurement
    no2: Measurement
    co: Measurement
    t: Measurement


class CityLabel(BaseModel):
    name: str


class ReadingTime(BaseModel):
    s: str


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with milliseconds and a Z suffix.

    Args:
        moment: Timezone-aware datetime.

    Returns:
        A string such as ``2024-01-01T12:00:00.000Z``.
    """
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AqiReading(BaseModel):
    """Air quality and temperature for one city.

    ``source`` is set when the reading is returned to a caller and is never
    stored in the cache.
    """

    aqi: Optional[int] = None
    city: CityLabel
    iaqi: Iaqi
    time: ReadingTime
    source: Optional[Source] = None

    @classmethod
    def from_upstream(
        cls,
        location: GeoLocation,
        air_quality: AirQuality,
        weather: CurrentWeather,
        observed_at: datetime,
    ) -> "AqiReading":
        """Merge geocoding, air-quality and weather results.

        Args:
            location: First geocoding result.
            air_quality: Current air-quality values at the location.
            weather: Current weather values at the location.
            observed_at: Time the reading was assembled.

        Returns:
            An untagged AqiReading.
        """
        return cls(
            aqi=air_quality.us_aqi,
            city=CityLabel(name=location.label),
            iaqi=Iaqi(
                pm25=Measurement(v=air_quality.pm2_5),
                pm10=Measurement(v=air_quality.pm10),
                o3=Measurement(v=air_quality.ozone),
                no2=Measurement(v=air_quality.nitrogen_dioxide),
                co=Measurement(v=air_quality.carbon_monoxide),
                t=Measurement(v=weather.temperature_2m),
            ),
            time=ReadingTime(s=format_timestamp(observed_at)),
        )

    def tagged(self, source: Optional[Source]) -> "AqiReading":
        return self.model_copy(update={"source": source}, deep=True)

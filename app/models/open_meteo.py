"""Current-conditions payloads from the Open-Meteo APIs."""

from typing import Optional

from pydantic import BaseModel

AIR_QUALITY_FIELDS = (
    "us_aqi",
    "pm10",
    "pm2_5",
    "ozone",
    "nitrogen_dioxide",
    "carbon_monoxide",
)


class AirQuality(BaseModel):
    """The `current` block of the air-quality API."""

    us_aqi: Optional[int] = None
    pm10: Optional[float] = None
    pm2_5: Optional[float] = None
    ozone: Optional[float] = None
    nitrogen_dioxide: Optional[float] = None
    carbon_monoxide: Optional[float] = None


class CurrentWeather(BaseModel):
    """The `current` block of the forecast API."""

    temperature_2m: Optional[float] = None

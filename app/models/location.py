"""Geocoding result model."""

from typing import Optional

from pydantic import BaseModel


class GeoLocation(BaseModel):
    """Location information returned by the geocoding API."""

    name: str
    country: Optional[str] = None
    latitude: float
    longitude: float
    country_code: Optional[str] = None
    admin1: Optional[str] = None

    @property
    def label(self) -> str:
        if not self.country:
            return self.name
        return f"{self.name}, {self.country}"

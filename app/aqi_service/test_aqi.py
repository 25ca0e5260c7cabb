from datetime import datetime, timezone

import pytest

from app.aqi_service.aqi import AqiService, geocoding_query
from app.errors import CityNotFoundError, UpstreamError
from app.models.location import GeoLocation
from app.models.open_meteo import AirQuality, CurrentWeather
from app.result_cache.cache import InMemoryResultCache

LONDON = GeoLocation(
    name="London", country="United Kingdom", latitude=51.5, longitude=-0.12
)
FIXED_NOW = datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class FakeUpstream:
    """Records calls and returns canned Open-Meteo results."""

    def __init__(self, locations=None, air_quality=None, weather=None):
        self.locations = [LONDON] if locations is None else locations
        self.air_quality = air_quality or AirQuality(
            us_aqi=42,
            pm10=18,
            pm2_5=9,
            ozone=60,
            nitrogen_dioxide=15,
            carbon_monoxide=300,
        )
        self.weather = weather or CurrentWeather(temperature_2m=14.2)
        self.geocode_calls = []
        self.air_quality_calls = []
        self.weather_calls = []

    def geocode(self, name, count=1):
        self.geocode_calls.append((name, count))
        return self.locations

    def get_air_quality(self, latitude, longitude):
        self.air_quality_calls.append((latitude, longitude))
        if isinstance(self.air_quality, Exception):
            raise self.air_quality
        return self.air_quality

    def get_current_weather(self, latitude, longitude):
        self.weather_calls.append((latitude, longitude))
        if isinstance(self.weather, Exception):
            raise self.weather
        return self.weather


def make_service(upstream, clock=None):
    cache = InMemoryResultCache(ttl_s=3600, clock=clock or FakeClock())
    return AqiService(
        cache=cache,
        geocode=upstream.geocode,
        get_air_quality=upstream.get_air_quality,
        get_current_weather=upstream.get_current_weather,
        now=lambda: FIXED_NOW,
    )


@pytest.mark.parametrize(
    "city_input, expected",
    [
        ("Ahmedabad, Gujarat, India", "Ahmedabad"),
        ("Ahmedabad (Gujarat), India", "Ahmedabad"),
        ("Paris", "Paris"),
        ("  New York  ", "New York"),
        ("Springfield (IL)", "Springfield"),
    ],
)
def test_geocoding_query(city_input, expected):
    assert geocoding_query(city_input) == expected


def test_lookup_merges_upstream_results():
    upstream = FakeUpstream()
    reading = make_service(upstream).lookup("London")

    assert reading.model_dump() == {
        "aqi": 42,
        "city": {"name": "London, United Kingdom"},
        "iaqi": {
            "pm25": {"v": 9},
            "pm10": {"v": 18},
            "o3": {"v": 60},
            "no2": {"v": 15},
            "co": {"v": 300},
            "t": {"v": 14.2},
        },
        "time": {"s": "2024-01-01T12:30:00.000Z"},
        "source": "api",
    }
    assert upstream.geocode_calls == [("London", 1)]
    assert upstream.air_quality_calls == [(51.5, -0.12)]
    assert upstream.weather_calls == [(51.5, -0.12)]


def test_lookup_geocodes_truncated_name():
    upstream = FakeUpstream()
    make_service(upstream).lookup("Ahmedabad (Gujarat), India")
    assert upstream.geocode_calls == [("Ahmedabad", 1)]


def test_repeat_lookup_is_served_from_cache():
    upstream = FakeUpstream()
    service = make_service(upstream)

    first = service.lookup("London")
    second = service.lookup("  LONDON ")

    assert first.source == "api"
    assert second.source == "cache"
    assert first.model_dump(exclude={"source"}) == second.model_dump(exclude={"source"})
    assert len(upstream.geocode_calls) == 1
    assert len(upstream.air_quality_calls) == 1


def test_lookup_after_ttl_fetches_again():
    upstream = FakeUpstream()
    clock = FakeClock()
    service = make_service(upstream, clock=clock)

    service.lookup("London")
    clock.now += 3600
    reading = service.lookup("London")

    assert reading.source == "api"
    assert len(upstream.geocode_calls) == 2


def test_differently_punctuated_inputs_cache_separately():
    upstream = FakeUpstream()
    service = make_service(upstream)

    service.lookup("Paris")
    reading = service.lookup("Paris, France")

    assert reading.source == "api"
    assert upstream.geocode_calls == [("Paris", 1), ("Paris", 1)]


def test_lookup_unknown_city_raises_not_found():
    upstream = FakeUpstream(locations=[])
    service = make_service(upstream)

    with pytest.raises(CityNotFoundError):
        service.lookup("Loooonnddonnn")
    assert upstream.air_quality_calls == []
    assert service.cache.get("loooonnddonnn") is None


def test_lookup_upstream_failure_is_not_cached():
    upstream = FakeUpstream(weather=UpstreamError("Weather lookup failed"))
    service = make_service(upstream)

    with pytest.raises(UpstreamError):
        service.lookup("London")
    assert service.cache.get("london") is None


def test_lookup_missing_pollutants_become_null():
    upstream = FakeUpstream(
        air_quality=AirQuality(us_aqi=None, pm2_5=3.5),
        weather=CurrentWeather(),
    )
    reading = make_service(upstream).lookup("London")

    assert reading.aqi is None
    assert reading.iaqi.pm25.v == 3.5
    assert reading.iaqi.o3.v is None
    assert reading.iaqi.t.v is None


def test_lookup_location_without_country_uses_name_only():
    station = GeoLocation(name="McMurdo Station", latitude=-77.8, longitude=166.7)
    upstream = FakeUpstream(locations=[station])
    reading = make_service(upstream).lookup("McMurdo Station")

    assert reading.source == "api"
    assert reading.city.name == "McMurdo Station"
    assert upstream.air_quality_calls == [(-77.8, 166.7)]


def test_mutating_returned_reading_leaves_cache_intact():
    service = make_service(FakeUpstream())

    first = service.lookup("London")
    first.iaqi.pm25.v = -1
    first.city.name = "Elsewhere"

    cached = service.lookup("London")
    assert cached.iaqi.pm25.v == 9
    assert cached.city.name == "London, United Kingdom"

    cached.iaqi.t.v = -1
    assert service.lookup("London").iaqi.t.v == 14.2

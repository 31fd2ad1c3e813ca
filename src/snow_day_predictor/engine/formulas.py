"""Apparent-temperature formulas and WMO weather-code descriptions."""

from __future__ import annotations

WEATHER_CODES: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Foggy",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def describe_weather_code(code: int) -> str:
    return WEATHER_CODES.get(code, "Unknown")


def wind_chill(temp_f: float, wind_mph: float) -> float:
    """NWS wind chill; defined at or below 50°F with wind of at least 3 mph."""
    if temp_f > 50 or wind_mph < 3:
        return temp_f
    factor = wind_mph**0.16
    return float(round(35.74 + 0.6215 * temp_f - 35.75 * factor + 0.4275 * temp_f * factor))


def heat_index(temp_f: float, humidity: float) -> float:
    """Rothfusz regression, used above 80°F."""
    hi = -42.379 + 2.04901523 * temp_f + 10.14333127 * humidity
    hi -= 0.22475541 * temp_f * humidity
    hi -= 6.83783e-3 * temp_f * temp_f
    hi -= 5.481717e-2 * humidity * humidity
    hi += 1.22874e-3 * temp_f * temp_f * humidity
    hi += 8.5282e-4 * temp_f * humidity * humidity
    hi -= 1.99e-6 * temp_f * temp_f * humidity * humidity
    return float(round(hi))


def feels_like(temp_f: float, humidity: float, wind_mph: float) -> float:
    if temp_f <= 50:
        return wind_chill(temp_f, wind_mph)
    if temp_f < 80:
        return temp_f
    return heat_index(temp_f, humidity)

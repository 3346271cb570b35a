# weather/weather.py
# A minimal MCP server that exposes NWS weather alerts (and forecasts) as tools
# Tools:
#   - get-alerts(state: str)
#   - get-forecast(latitude: float, longitude: float)
#
# Run:
#   pip install -e .
#   weather-server            # or: python weather/weather.py
#
# Logs go to stderr; stdout is reserved for the stdio transport.

import logging
import os
import signal
import sys
from typing import Annotated, Any, Dict, List, Optional

import httpx
from mcp.server.fastmcp import FastMCP
from pydantic import Field

logger = logging.getLogger(__name__)

mcp = FastMCP("weather")
NWS_API_BASE = "https://api.weather.gov"
USER_AGENT = "weather-app/1.0"


async def make_nws_request(url: str) -> Optional[Dict[str, Any]]:
    """GET ``url`` from the NWS API, returning the decoded JSON or None on failure."""
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": "application/geo+json"
    }
    async with httpx.AsyncClient(follow_redirects=True, timeout=30.0) as client:
        try:
            r = await client.get(url, headers=headers)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error making NWS request to %s: %s", url, e)
            return None
    if not isinstance(data, dict):
        logger.error("Unexpected NWS response from %s: %.200r", url, data)
        return None
    return data


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def format_alert(feature: Dict[str, Any]) -> str:
    props = _as_dict(_as_dict(feature).get("properties"))
    return "\n".join([
        f"Event: {props.get('event') or 'Unknown'}",
        f"Area: {props.get('areaDesc') or 'Unknown'}",
        f"Severity: {props.get('severity') or 'Unknown'}",
        f"Status: {props.get('status') or 'Unknown'}",
        f"Headline: {props.get('headline') or 'No headline'}",
        "---",
    ])


def format_period(period: Dict[str, Any]) -> str:
    period = _as_dict(period)
    temperature = period.get("temperature")
    if temperature is None:
        temperature = "Unknown"
    return "\n".join([
        f"{period.get('name') or 'Unknown'}:",
        f"Temperature: {temperature}°{period.get('temperatureUnit') or 'F'}",
        f"Wind: {period.get('windSpeed') or 'Unknown'} {period.get('windDirection') or ''}",
        f"{period.get('shortForecast') or 'No forecast available'}",
        "---",
    ])


@mcp.tool(name="get-alerts", description="Get weather alerts for a state")
async def get_alerts(
    state: Annotated[
        str,
        Field(min_length=2, max_length=2, description="Two-letter state code (e.g. CA, NY)"),
    ],
) -> str:
    if not state or len(state) != 2:
        return "Please provide a 2-letter US state/territory code (e.g., CA, NY)."
    state_code = state.upper()
    url = f"{NWS_API_BASE}/alerts/active?area={state_code}"
    data = await make_nws_request(url)
    if data is None:
        return f"Failed to fetch alerts for {state_code}. Please try another state."

    features = _as_list(data.get("features"))
    if not features:
        return f"No alerts found for {state_code}."

    formatted = [format_alert(f) for f in features]
    return f"Active alerts for {state_code}:\n\n" + "\n".join(formatted)


@mcp.tool(name="get-forecast", description="Get weather forecast for a location")
async def get_forecast(
    latitude: Annotated[float, Field(ge=-90, le=90, description="Latitude of the location")],
    longitude: Annotated[float, Field(ge=-180, le=180, description="Longitude of the location")],
) -> str:
    # Step 1: resolve gridpoint from lat/lon
    points_url = f"{NWS_API_BASE}/points/{latitude:.4f},{longitude:.4f}"
    points = await make_nws_request(points_url)
    if points is None:
        return (
            f"Failed to retrieve grid point data for coordinates: {latitude}, {longitude}. "
            "This location may not be supported by the NWS API (only US locations are supported)."
        )

    forecast_url = _as_dict(points.get("properties")).get("forecast")
    if not forecast_url or not isinstance(forecast_url, str):
        return "Failed to get forecast URL from grid point data."

    # Step 2: fetch forecast periods
    forecast = await make_nws_request(forecast_url)
    if forecast is None:
        return "Failed to retrieve forecast data."

    periods: List[Dict[str, Any]] = _as_list(_as_dict(forecast.get("properties")).get("periods"))
    if not periods:
        return "No forecast periods available."

    formatted = [format_period(p) for p in periods]
    return f"Forecast for {latitude}, {longitude}:\n\n" + "\n".join(formatted)


def _shutdown(signum, frame) -> None:
    logger.info("Shutting down server... (signal %s)", signal.Signals(signum).name)
    # The stdio transport reads stdin in a worker thread that SystemExit would wait on.
    logging.shutdown()
    os._exit(0)


def main() -> None:
    # FastMCP installs its own root handler at import time; replace it.
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        stream=sys.stderr,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    transport = os.getenv("MCP_TRANSPORT", "stdio")
    try:
        logger.info("Weather MCP Server running on %s", transport)
        mcp.run(transport=transport)
    except Exception:
        logger.exception("Error starting server")
        sys.exit(1)


if __name__ == "__main__":
    main()

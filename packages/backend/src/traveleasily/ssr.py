"""Crawler-facing HTML for trip pages.

Search engines and link-preview bots don't run the SPA, so trip list
and trip detail routes answer them with a small page carrying a title,
description and Open Graph tags instead of JSON. Pages are Jinja2
templates under traveleasily/templates, rendered with autoescape on.
"""

import re
from typing import Optional

from jinja2 import Environment, PackageLoader, select_autoescape

from traveleasily.schemas.trip import TripRead

BOT_PATTERN = re.compile(
    r"Googlebot|facebookexternalhit|Twitterbot|bingbot|LinkedInBot|Yahoo|DuckDuckBot",
    re.IGNORECASE,
)

DEFAULT_DESCRIPTION = "A wonderful trip!"
DEFAULT_IMAGE = "/images/Logo.png"

templates = Environment(
    loader=PackageLoader("traveleasily", "templates"),
    autoescape=select_autoescape(["html"]),
)


def is_bot_request(user_agent: Optional[str]) -> bool:
    return bool(user_agent) and BOT_PATTERN.search(user_agent) is not None


def render_trips_html(trips: list[TripRead]) -> str:
    return templates.get_template("trips.html").render(trips=trips)


def render_trip_html(trip: TripRead) -> str:
    return templates.get_template("trip.html").render(
        trip=trip,
        default_description=DEFAULT_DESCRIPTION,
        default_image=DEFAULT_IMAGE,
    )

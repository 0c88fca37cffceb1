"""Crawler detection and HTML rendering tests."""

import uuid

import pytest

from traveleasily.schemas.trip import TripOwner, TripRead
from traveleasily.ssr import is_bot_request, render_trip_html, render_trips_html


def _trip(**overrides) -> TripRead:
    fields = dict(
        id=uuid.uuid4(),
        slug="japan-solo",
        type_traveler="Solo",
        country="Japan",
        type_trip="Solo",
        trip_description=["Tokyo"],
        trip_photos=["https://img.example.com/tokyo.jpg"],
        num_of_days=1,
        num_of_comments=0,
        num_of_likes=4,
        owner=TripOwner(user_name="Alice"),
        comments=[],
    )
    fields.update(overrides)
    return TripRead(**fields)


@pytest.mark.parametrize(
    "user_agent",
    [
        "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
        "facebookexternalhit/1.1",
        "Twitterbot/1.0",
        "Mozilla/5.0 (compatible; BINGBOT/2.0)",
        "LinkedInBot/1.0",
        "DuckDuckBot/1.1",
    ],
)
def test_bots_detected(user_agent):
    assert is_bot_request(user_agent)


@pytest.mark.parametrize(
    "user_agent",
    [None, "", "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) Safari/605.1.15"],
)
def test_browsers_not_detected(user_agent):
    assert not is_bot_request(user_agent)


def test_trip_page_has_open_graph_tags():
    html = render_trip_html(_trip())
    assert '<meta property="og:title" content="Trip to Japan - Solo" />' in html
    assert '<meta property="og:description" content="Tokyo" />' in html
    assert '<meta property="og:image" content="https://img.example.com/tokyo.jpg" />' in html
    assert "Likes: 4" in html


def test_trip_page_defaults():
    html = render_trip_html(_trip(trip_description=[], trip_photos=[]))
    assert 'content="A wonderful trip!"' in html
    assert 'content="/images/Logo.png"' in html


def test_trip_page_escapes_user_content():
    html = render_trip_html(_trip(country='<script>alert("x")</script>'))
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_trips_list_links_to_detail_pages():
    trips = [_trip(country="Peru"), _trip(country="Chile")]
    html = render_trips_html(trips)
    for trip in trips:
        assert f'href="/trips/full/{trip.id}"' in html
    assert "Peru - Solo" in html


def test_trips_list_escapes_user_content():
    html = render_trips_html([_trip(type_trip="<b>Road</b> & Rail")])
    assert "<b>" not in html
    assert "&lt;b&gt;Road&lt;/b&gt; &amp; Rail" in html

"""Travel Easily: social travel-sharing backend.

Users post trips with photos and day-by-day descriptions, like and
comment on each other's trips, and keep a list of favorites. Every
state change is mirrored to connected clients over Socket.IO.
"""

__version__ = "0.1.0"

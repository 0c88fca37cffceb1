"""Socket event names.

Centralizing event names as constants prevents typos and makes the
whole client-facing vocabulary discoverable in one place. Names are
camelCase because browser clients subscribe to them verbatim.
"""

# ─── Trips ───────────────────────────────────────────────

TRIP_ADDED = "tripAdded"
TRIP_UPDATED = "tripUpdated"
TRIP_DELETED = "tripDeleted"
IMAGE_ADDED = "imageAdded"

# ─── Likes and comments ──────────────────────────────────

LIKE_ADDED = "likeAdded"
LIKE_REMOVED = "likeRemoved"
COMMENT_ADDED = "commentAdded"
COMMENT_DELETED = "commentDeleted"

# ─── Users ───────────────────────────────────────────────

USER_DELETED = "userDeleted"
DISCONNECT_USER = "disconnectUser"  # sent only to the deleted user's room

# ─── Client → server relays ──────────────────────────────
# Events a client may emit; the server re-broadcasts them to everyone
# under the mapped name.

CLIENT_RELAYS: dict[str, str] = {
    "updateTrip": TRIP_UPDATED,
    "addImage": IMAGE_ADDED,
    "addLike": LIKE_ADDED,
    "addComment": COMMENT_ADDED,
}

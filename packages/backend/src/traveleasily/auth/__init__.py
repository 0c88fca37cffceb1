"""Authentication.

Users sign in with email/password and receive a short-lived JWT access
token plus a long-lived refresh token. Refresh tokens are signed with
their own secret and tracked per user so they can be rotated and
revoked. Route handlers resolve the caller through the dependencies
in auth.dependencies.
"""

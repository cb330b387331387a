"""
MovieMap API.

This package serves the filming-location map: a public list of approved
locations, a public submission endpoint, and a Firebase-authenticated
moderation workflow that turns approved submissions into locations.
"""

__version__ = "1.0.0"

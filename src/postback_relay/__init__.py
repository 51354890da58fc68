"""
Postback Relay - Affiliate postback → tracking platform relay

A FastAPI service that receives conversion postbacks, expands each one
into funnel events with a small decision table, and relays every event
to the tracking platform as an independent GET.
"""

__version__ = "0.1.0"

from .main import app

__all__ = ["app"]

"""Minimal request/response types consumed and produced by the router."""

from waypoint.http.headers import Headers
from waypoint.http.request import Request
from waypoint.http.response import Response

__all__ = ["Headers", "Request", "Response"]

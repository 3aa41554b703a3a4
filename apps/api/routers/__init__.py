"""Routers package."""

from . import (
    health,
    billing,
    worksheets,
    webhooks,
    email,
)

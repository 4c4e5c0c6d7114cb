"""Remote command scripts run through the executor."""

from .base import RemoteCommandScript, RenderedScript
from . import templates

__all__ = ["RemoteCommandScript", "RenderedScript", "templates"]

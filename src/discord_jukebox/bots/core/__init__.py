"""
Bot wiring and entry point.
"""

from .bot_core import JukeboxBot, main, run

__all__ = ["JukeboxBot", "main", "run"]

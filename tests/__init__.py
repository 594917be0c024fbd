"""
Test suite for the Discord Jukebox bot.

Unit tests are organized by package:
- test_core: connection supervision and search sessions
- test_lavalink: node protocol, models and queue handling
- test_bots: search buttons, embeds and interaction handling
- test_config / test_api: configuration loading and the status API
"""

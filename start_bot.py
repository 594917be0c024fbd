#!/usr/bin/env python3
"""
Startup script for the Discord Jukebox Bot.
"""

import asyncio
import os
import sys
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from discord_jukebox.bots.core.bot_core import main
from discord_jukebox.infrastructure import setup_logging

logger = setup_logging(component_name="jukebox_bot")


async def startup():
    """Startup function with error handling."""
    try:
        if not Path(".env").exists():
            logger.warning("No .env file found!")

        await main()

    except KeyboardInterrupt:
        logger.info("Bot shutdown requested by user")
    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    os.makedirs("logs", exist_ok=True)

    try:
        asyncio.run(startup())
    except KeyboardInterrupt:
        print("\nBot shutdown requested")
    except Exception as e:
        print(f"Fatal error: {e}")
        sys.exit(1)

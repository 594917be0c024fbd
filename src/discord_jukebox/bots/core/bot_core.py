"""
Core bot management class for the Discord jukebox.

This module provides a centralized way to manage the Discord bot instance,
its audio node components, command registration and event handling.
"""

import asyncio
import sys
from typing import Awaitable, Callable, Dict, Optional

import discord
from discord import app_commands
from discord.ext import commands

from discord_jukebox.bots.commands import BaseCommandHandler, PlaybackCommands, QueueCommands
from discord_jukebox.bots.handlers import EventHandlers, PlayerControlHandler
from discord_jukebox.bots.utils.player_panel import PlayerPanelManager
from discord_jukebox.config.settings import ConfigManager, JukeboxConfig
from discord_jukebox.core.connection_supervisor import (
    ConnectionSupervisor,
    SupervisorSettings,
)
from discord_jukebox.core.search_sessions import SearchSessionManager
from discord_jukebox.infrastructure import setup_logging
from discord_jukebox.lavalink.models import NodeConfig
from discord_jukebox.lavalink.node_manager import LavalinkNodeManager


class JukeboxCommandTree(app_commands.CommandTree):
    """Command tree that runs the role gate before any slash command."""

    permission_check: Optional[Callable[[discord.Interaction], Awaitable[bool]]] = None

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if self.permission_check is None:
            return True
        return await self.permission_check(interaction)


class JukeboxBot:
    """Main bot class that manages the Discord bot and all its components."""

    def __init__(
        self,
        config: Optional[JukeboxConfig] = None,
        node_manager: Optional[LavalinkNodeManager] = None,
        supervisor: Optional[ConnectionSupervisor] = None,
        sessions: Optional[SearchSessionManager] = None,
    ):
        """
        Initialize the bot with all necessary components.

        Components not passed in are built from the configuration, so tests
        can inject fakes for any of them.
        """
        self.logger = setup_logging(component_name="jukebox_bot")

        if config is None:
            try:
                config = ConfigManager().get_config()
            except Exception as e:
                self.logger.error(f"Failed to load configuration: {e}", exc_info=True)
                sys.exit(1)
        self.config = config

        intents = discord.Intents.default()
        intents.voice_states = True
        intents.guilds = True

        self.bot = commands.Bot(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
            tree_cls=JukeboxCommandTree,
        )

        self.node_config = NodeConfig(
            host=config.lavalink_host,
            port=config.lavalink_port,
            password=config.lavalink_password,
            identifier=config.node_identifier,
            secure=config.lavalink_secure,
        )
        self.node_manager = node_manager or LavalinkNodeManager(
            setup_logging(component_name="lavalink")
        )
        self.supervisor = supervisor or ConnectionSupervisor(
            self.node_manager,
            self.node_config,
            SupervisorSettings.from_config(config),
        )
        self.sessions = sessions or SearchSessionManager()
        self.panels = PlayerPanelManager(self.bot, self.logger)

        self.event_handlers: Optional[EventHandlers] = None
        self.command_handlers: Dict[str, BaseCommandHandler] = {}

        self._setup_command_handlers()
        self._setup_event_handlers()

    def _setup_event_handlers(self) -> None:
        """Setup event handlers for the bot."""
        self.event_handlers = EventHandlers(
            bot=self.bot,
            supervisor=self.supervisor,
            sessions=self.sessions,
            node_manager=self.node_manager,
            config=self.config,
            logger=self.logger,
            panels=self.panels,
            controls=self.command_handlers["controls"],
        )

        self.bot.event(self.event_handlers.on_ready)
        self.bot.event(self.event_handlers.on_voice_state_update)
        self.bot.event(self.event_handlers.on_interaction)

        # Dispatched by mafic through the client
        for name in (
            "on_node_ready",
            "on_node_unavailable",
            "on_track_start",
            "on_track_end",
            "on_track_exception",
            "on_track_stuck",
        ):
            self.bot.add_listener(getattr(self.event_handlers, name), name)

    def _setup_command_handlers(self) -> None:
        """Setup command handlers for the bot."""
        shared = dict(
            supervisor=self.supervisor,
            sessions=self.sessions,
            node_manager=self.node_manager,
            logger=self.logger,
            config=self.config,
            panels=self.panels,
        )
        playback = PlaybackCommands(**shared)
        queue = QueueCommands(**shared)
        self.command_handlers = {
            "playback": playback,
            "queue": queue,
            "controls": PlayerControlHandler(playback=playback, queue=queue, **shared),
        }
        self.bot.tree.permission_check = playback.require_permission

        self._register_commands()

    def _register_commands(self) -> None:
        """Register all slash commands."""
        playback: PlaybackCommands = self.command_handlers["playback"]
        queue: QueueCommands = self.command_handlers["queue"]

        @self.bot.tree.command(name="play", description="Play a song from a URL or search query.")
        @app_commands.describe(query="The song to play (URL or search query).")
        @app_commands.guild_only()
        async def play_wrapper(interaction: discord.Interaction, query: str):
            await playback.play_command(interaction, query)

        @self.bot.tree.command(
            name="search", description="Search for music and pick tracks to queue."
        )
        @app_commands.describe(query="Search query (max 200 characters).")
        @app_commands.guild_only()
        async def search_wrapper(interaction: discord.Interaction, query: str):
            await playback.search_command(interaction, query)

        @self.bot.tree.command(name="skip", description="Skip the current track.")
        @app_commands.guild_only()
        async def skip_wrapper(interaction: discord.Interaction):
            await playback.skip_command(interaction)

        @self.bot.tree.command(name="stop", description="Stop playback and leave the channel.")
        @app_commands.guild_only()
        async def stop_wrapper(interaction: discord.Interaction):
            await playback.stop_command(interaction)

        @self.bot.tree.command(name="pause", description="Pause or resume playback.")
        @app_commands.guild_only()
        async def pause_wrapper(interaction: discord.Interaction):
            await playback.pause_command(interaction)

        @self.bot.tree.command(name="volume", description="Adjust the playback volume.")
        @app_commands.describe(level="Volume level (0-100).")
        @app_commands.guild_only()
        async def volume_wrapper(
            interaction: discord.Interaction, level: app_commands.Range[int, 0, 100]
        ):
            await playback.volume_command(interaction, level)

        @self.bot.tree.command(name="nowplaying", description="Show the song that is playing.")
        @app_commands.guild_only()
        async def nowplaying_wrapper(interaction: discord.Interaction):
            await playback.nowplaying_command(interaction)

        @self.bot.tree.command(name="queue", description="Show the song queue.")
        @app_commands.guild_only()
        async def queue_wrapper(interaction: discord.Interaction):
            await queue.queue_command(interaction)

        @self.bot.tree.command(name="clear", description="Clear the queue.")
        @app_commands.guild_only()
        async def clear_wrapper(interaction: discord.Interaction):
            await queue.clear_command(interaction)

        @self.bot.tree.command(name="shuffle", description="Shuffle the queue.")
        @app_commands.guild_only()
        async def shuffle_wrapper(interaction: discord.Interaction):
            await queue.shuffle_command(interaction)

        @self.bot.tree.command(
            name="loop", description="Cycle loop mode: off, current track, whole queue."
        )
        @app_commands.guild_only()
        async def loop_wrapper(interaction: discord.Interaction):
            await queue.loop_command(interaction)

        @self.bot.tree.command(name="back", description="Go back to the previous song.")
        @app_commands.guild_only()
        async def back_wrapper(interaction: discord.Interaction):
            await queue.back_command(interaction)

        @self.bot.tree.command(name="status", description="Show the music service status.")
        async def status_wrapper(interaction: discord.Interaction):
            await playback.status_command(interaction)

    async def start(self) -> None:
        """Start the bot."""
        try:
            self.logger.info("Starting Jukebox Bot...")
            await self.bot.start(self.config.token)
        except Exception as e:
            self.logger.critical(f"Failed to start Jukebox Bot: {e}")
            raise

    async def close(self) -> None:
        """Close the bot and clean up resources."""
        self.supervisor.destroy()
        self.sessions.destroy()
        if self.event_handlers:
            self.event_handlers.close()
        await self.node_manager.close()
        if self.bot:
            await self.bot.close()


async def main():
    """Main function to initialize and run the bot (and the status API if enabled)."""
    bot = JukeboxBot()

    api_task: Optional[asyncio.Task] = None
    if bot.config.api_enabled:
        from discord_jukebox.api.server import run_api_server

        api_task = asyncio.create_task(
            run_api_server(
                supervisor=bot.supervisor,
                sessions=bot.sessions,
                host=bot.config.api_host,
                port=bot.config.api_port,
            )
        )

    try:
        await bot.start()
    except KeyboardInterrupt:
        bot.logger.info("Bot shutdown requested")
    except Exception as e:
        bot.logger.critical(f"Fatal error: {e}")
        raise
    finally:
        if api_task:
            api_task.cancel()
        await bot.close()


def run() -> None:
    """Console entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()

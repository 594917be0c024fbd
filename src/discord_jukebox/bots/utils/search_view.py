"""
Button layout for paginated search results.

The buttons carry ``search_<action>_<session id>[_<track index>]`` custom ids
and have no callbacks of their own; clicks are routed through the bot's
``on_interaction`` handler to the search navigation handler.
"""

from typing import Optional

import discord

from discord_jukebox.core.search_sessions import PageData
from discord_jukebox.core.types import SEARCH_CUSTOM_ID_PREFIX, SESSION_MAX_AGE

# Discord allows at most 5 buttons per action row
MAX_BUTTONS_PER_ROW = 5

NAVIGATION_ROW = 0
FIRST_SELECTION_ROW = 1


def build_custom_id(action: str, session_id: str, track_index: Optional[int] = None) -> str:
    """Compose a search component custom id."""
    custom_id = f"{SEARCH_CUSTOM_ID_PREFIX}{action}_{session_id}"
    if track_index is not None:
        custom_id += f"_{track_index}"
    return custom_id


def build_search_view(page_data: PageData, session_id: str) -> discord.ui.View:
    """Build the navigation row and the track selection rows for one page."""
    view = discord.ui.View(timeout=SESSION_MAX_AGE)

    if page_data.has_previous:
        view.add_item(
            discord.ui.Button(
                custom_id=build_custom_id("prev", session_id),
                emoji="⬅️",
                style=discord.ButtonStyle.secondary,
                row=NAVIGATION_ROW,
            )
        )
    if page_data.has_next:
        view.add_item(
            discord.ui.Button(
                custom_id=build_custom_id("next", session_id),
                emoji="➡️",
                style=discord.ButtonStyle.secondary,
                row=NAVIGATION_ROW,
            )
        )
    if page_data.selected_count:
        view.add_item(
            discord.ui.Button(
                custom_id=build_custom_id("add_selected", session_id),
                label=f"Add Selected ({page_data.selected_count})",
                emoji="➕",
                style=discord.ButtonStyle.success,
                row=NAVIGATION_ROW,
            )
        )
    view.add_item(
        discord.ui.Button(
            custom_id=build_custom_id("cancel", session_id),
            label="Cancel",
            emoji="❌",
            style=discord.ButtonStyle.danger,
            row=NAVIGATION_ROW,
        )
    )

    selected = set(page_data.selected_tracks)
    for offset in range(len(page_data.tracks)):
        index = page_data.start_index + offset
        is_selected = index in selected
        view.add_item(
            discord.ui.Button(
                custom_id=build_custom_id("toggle", session_id, index),
                label=str(index + 1),
                emoji="✅" if is_selected else "⬜",
                style=(
                    discord.ButtonStyle.success
                    if is_selected
                    else discord.ButtonStyle.secondary
                ),
                row=FIRST_SELECTION_ROW + offset // MAX_BUTTONS_PER_ROW,
            )
        )

    return view

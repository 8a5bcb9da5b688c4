"""
discord_bot.py — Slash-command front end

Commands:
  /whitelist <username>     validate -> store check -> console whitelist add
                            (HTTP fallback) -> record in store -> announce
  /unwhitelist <username>   console whitelist remove -> drop from store
  /whitelist-list           read whitelist.json from the server
  /whitelist-sync           reconcile the store with whitelist.json

Announcements (success / failure embeds) go to DISCORD_CHANNEL_ID.
on_ready syncs the command tree and starts the status monitor when a status
channel is configured.
"""
import discord
from discord import app_commands
from discord.ext import commands

import config
from discord_helpers import (
    build_sync_embed,
    build_unwhitelist_embed,
    build_whitelist_error_embed,
    build_whitelist_list_embed,
    build_whitelist_success_embed,
    format_date,
    to_embed,
)
from status_monitor import StatusMonitor
from validators import is_bedrock_name, validate_username


async def _announce(bot: commands.Bot, embed: dict):
    """Post an embed to the whitelist channel (best effort)."""
    if not config.DISCORD_CHANNEL_ID:
        return
    try:
        channel = bot.get_channel(config.DISCORD_CHANNEL_ID) or await bot.fetch_channel(config.DISCORD_CHANNEL_ID)
        await channel.send(embed=to_embed(embed))
    except Exception as e:
        print(f"[BOT] Failed to send embed to channel {config.DISCORD_CHANNEL_ID}: {e}")


def build_bot(console, api, store, query=None) -> commands.Bot:
    """
    console: ConsoleCommands, api: PanelAPI, store: WhitelistStore,
    query: MinecraftQuery (optional, status fallback)
    """
    bot = commands.Bot(command_prefix="!", intents=discord.Intents.default())
    bot.status_monitor = None

    @bot.event
    async def on_ready():
        print(f"[BOT] Logged in as {bot.user}")
        try:
            synced = await bot.tree.sync()
            print(f"[BOT] Synced {len(synced)} slash commands")
        except Exception as e:
            print(f"[BOT] Failed to sync slash commands: {e}")

        if not config.DISCORD_STATUS_CHANNEL_ID:
            print("[BOT] DISCORD_STATUS_CHANNEL_ID not set, status monitor disabled")
            return
        if bot.status_monitor is None:
            bot.status_monitor = StatusMonitor(
                bot, config.DISCORD_STATUS_CHANNEL_ID, api, console, query,
                interval=config.STATUS_UPDATE_INTERVAL,
            )
        bot.status_monitor.start()

    @bot.tree.error
    async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
        name = interaction.command.name if interaction.command else "?"
        print(f"[BOT] Error handling /{name}: {error}")
        content = "❌ Something went wrong while handling the command."
        if interaction.response.is_done():
            await interaction.edit_original_response(content=content, embed=None)
        else:
            await interaction.response.send_message(content, ephemeral=True)

    # ── /whitelist ────────────────────────────────────────────────────────────

    @bot.tree.command(name="whitelist", description="Whitelist a Java or Bedrock player")
    @app_commands.describe(username="Minecraft username (Bedrock: .name)")
    async def whitelist(interaction: discord.Interaction, username: str):
        user = interaction.user
        print(f"[BOT] /whitelist {username} by {user}")

        valid, error = validate_username(username)
        if not valid:
            await interaction.response.send_message(f"❌ **Invalid username**\n{error}", ephemeral=True)
            return

        try:
            existing = store.is_whitelisted(username)
        except Exception as e:
            print(f"[BOT] Database error checking {username}: {e}")
            await interaction.response.send_message("❌ Database error. Please try again later.", ephemeral=True)
            return
        if existing:
            await interaction.response.send_message(
                f"⚠️ **{username}** has been whitelisted since {format_date(existing['added_at'])}",
                ephemeral=True,
            )
            return

        await interaction.response.defer()
        # Bedrock ".Name" goes through the same vanilla command; the server
        # only resolves it when Floodgate is installed.
        result = await console.whitelist_add(username)

        if not result.success:
            await _announce(bot, build_whitelist_error_embed(username, result.error))
            await interaction.edit_original_response(
                content=f"❌ Could not whitelist **{username}**\n{result.error or 'Unknown error'}"
            )
            return

        try:
            store.add(username, user.id, str(user))
        except Exception as e:
            print(f"[BOT] Whitelisted {username} on server but failed to store it: {e}")
            await interaction.edit_original_response(
                content="⚠️ The player was whitelisted on the server but could not be saved to the database. "
                        "Contact an administrator."
            )
            return

        await _announce(bot, build_whitelist_success_embed(username, user.id, bedrock=is_bedrock_name(username)))
        await interaction.edit_original_response(content=f"✅ **{username}** has been whitelisted!")

    # ── /unwhitelist ──────────────────────────────────────────────────────────

    @bot.tree.command(name="unwhitelist", description="Remove a player from the whitelist")
    @app_commands.describe(username="Minecraft username")
    async def unwhitelist(interaction: discord.Interaction, username: str):
        user = interaction.user
        print(f"[BOT] /unwhitelist {username} by {user}")

        await interaction.response.defer()
        result = await console.whitelist_remove(username)

        if not result.success:
            await interaction.edit_original_response(
                content=f"❌ Could not remove **{username}** from the whitelist\n{result.error}"
            )
            return

        try:
            store.remove(username)
        except Exception as e:
            print(f"[BOT] Failed to remove {username} from database: {e}")

        await _announce(bot, build_unwhitelist_embed(username, user.id))
        await interaction.edit_original_response(content=f"✅ **{username}** has been removed from the whitelist!")

    # ── /whitelist-list ───────────────────────────────────────────────────────

    @bot.tree.command(name="whitelist-list", description="Show every player on the whitelist")
    async def whitelist_list(interaction: discord.Interaction):
        print(f"[BOT] /whitelist-list by {interaction.user}")
        await interaction.response.defer(ephemeral=True)
        try:
            entries = await api.read_whitelist()
        except Exception as e:
            print(f"[BOT] Failed to list whitelist: {e}")
            await interaction.edit_original_response(content="❌ Could not read the whitelist from the server.")
            return

        if not entries:
            await interaction.edit_original_response(content="📋 The whitelist is empty.")
            return
        await interaction.edit_original_response(embed=to_embed(build_whitelist_list_embed(entries)))

    # ── /whitelist-sync ───────────────────────────────────────────────────────

    @bot.tree.command(name="whitelist-sync", description="Sync the whitelist database with the server")
    async def whitelist_sync(interaction: discord.Interaction):
        print(f"[BOT] /whitelist-sync by {interaction.user}")
        await interaction.response.defer(ephemeral=True)
        try:
            entries = await api.read_whitelist()
            synced  = store.sync_with_server_whitelist(entries)
        except Exception as e:
            print(f"[BOT] Failed to sync whitelist: {e}")
            await interaction.edit_original_response(content="❌ Could not synchronise the whitelist.")
            return

        await interaction.edit_original_response(
            embed=to_embed(build_sync_embed(len(entries), synced["added"], synced["removed"]))
        )

    return bot

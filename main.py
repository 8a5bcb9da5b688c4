"""
Whitelist Bot - Main Entry Point
Discord slash commands -> Pterodactyl console (websocket feedback, HTTP fallback)
+ live server status message.
"""
import asyncio
import os
import signal
import sys

import config


def check_environment():
    """Check and display environment configuration."""
    print("\n" + "="*60)
    print("WHITELIST BOT - SYSTEM DIAGNOSTICS")
    print("="*60)
    print(f"Python: {sys.version.split()[0]}")
    print(f"Working Directory: {os.getcwd()}")

    print(f"\nEnvironment Variables:")
    print(f"  DISCORD_TOKEN:             {'Set' if config.DISCORD_TOKEN else 'MISSING'}")
    print(f"  DISCORD_CHANNEL_ID:        {config.DISCORD_CHANNEL_ID or 'MISSING'}")
    print(f"  DISCORD_STATUS_CHANNEL_ID: {config.DISCORD_STATUS_CHANNEL_ID or 'Not set (status monitor off)'}")
    print(f"  PTERODACTYL_URL:           {config.PTERODACTYL_URL or 'MISSING'}")
    print(f"  PTERODACTYL_SERVER_ID:     {config.PTERODACTYL_SERVER_ID or 'MISSING'}")
    print(f"  PTERODACTYL_API_KEY:       {'Set (' + config.PTERODACTYL_API_KEY[:6] + '...)' if config.PTERODACTYL_API_KEY else 'MISSING'}")
    print(f"  MINECRAFT_SERVER_HOST:     {config.MINECRAFT_SERVER_HOST or 'Not set (query fallback off)'}")
    print(f"  DATABASE_URL:              {'Set' if os.getenv('DATABASE_URL') else 'SQLite (' + config.DB_PATH + ')'}")
    print("="*60 + "\n")

    missing = [
        name for name, value in (
            ("DISCORD_TOKEN", config.DISCORD_TOKEN),
            ("DISCORD_CHANNEL_ID", config.DISCORD_CHANNEL_ID),
            ("PTERODACTYL_URL", config.PTERODACTYL_URL),
            ("PTERODACTYL_SERVER_ID", config.PTERODACTYL_SERVER_ID),
            ("PTERODACTYL_API_KEY", config.PTERODACTYL_API_KEY),
        )
        if not value
    ]
    if missing:
        print(f"FATAL ERROR: missing {', '.join(missing)}")
        return False
    return True


async def run():
    from console_commands import ConsoleCommands
    from console_session import ConsoleSession
    from discord_bot import build_bot
    from panel_api import PanelAPI
    from server_query import MinecraftQuery
    from whitelist_store import WhitelistStore

    print("[INIT] Initializing components...")
    api     = PanelAPI()
    session = ConsoleSession(api)
    console = ConsoleCommands(session, api)
    query   = MinecraftQuery()
    store   = WhitelistStore()
    bot     = build_bot(console, api, store, query)

    # Warm the console socket; failures retry in the background.
    await session.connect()

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass  # Windows: Ctrl+C still raises KeyboardInterrupt

    bot_task = asyncio.create_task(bot.start(config.DISCORD_TOKEN), name="discord-bot")
    stop_task = asyncio.create_task(stop.wait(), name="shutdown-signal")
    try:
        done, _ = await asyncio.wait({bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if bot_task in done:
            bot_task.result()  # re-raise login/gateway failures
    finally:
        print("\n" + "="*60)
        print("SHUTDOWN INITIATED")
        print("="*60)
        stop_task.cancel()
        if bot.status_monitor:
            bot.status_monitor.stop()
        await session.disconnect()
        await bot.close()
        print("Shutdown complete. Goodbye!\n")


def main():
    """Main entry point with full initialization."""

    if not check_environment():
        print("\nStartup aborted due to missing configuration")
        sys.exit(1)

    print("Starting whitelist bot...\n")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        sys.exit(0)
    except Exception as e:
        print(f"\nCRITICAL ERROR: {e}")
        import traceback
        traceback.print_exc()
        if "sessions remaining" in str(e):
            # Discord login rate limit: exit cleanly so the container is not restarted into it
            print("Discord session limit reached, exiting without restart.")
            sys.exit(0)
        sys.exit(1)


if __name__ == "__main__":
    main()

from __future__ import annotations

import asyncio

from discord_lfg import LfgBot, collect_bot_configuration
from discord_lfg.errors import ConfigurationError, LfgBotError
from discord_lfg.progress import ProgressPrinter
from discord_lfg.webhook import WebhookNotifier


async def _async_main() -> None:
    progress = ProgressPrinter()

    try:
        config = collect_bot_configuration()
    except ConfigurationError as exc:
        progress.error(str(exc))
        return

    progress = ProgressPrinter(verbose=config.verbose)
    progress.step(f"Starting group-finder bot (database: {config.storage.path})...")

    webhook_notifier = WebhookNotifier(config.webhook, progress) if config.webhook else None

    try:
        bot = LfgBot(config, progress=progress, notifier=webhook_notifier)
        await bot.run()
    except LfgBotError as exc:
        progress.error(str(exc))
    except Exception as exc:  # noqa: BLE001
        progress.error(f"An unexpected error occurred: {exc}")
    finally:
        if webhook_notifier:
            await webhook_notifier.close()


def main() -> None:
    try:
        asyncio.run(_async_main())
    except KeyboardInterrupt:
        print("\nBot stopped by user.")


if __name__ == "__main__":
    main()

"""Voice notes bot daemon entry point.

Listens for Telegram commands, voice/video/text messages and button
presses, and hands every event to the SessionOrchestrator. Speech is
transcribed locally with Whisper; notes are written to an Obsidian vault
through its Local REST API.

Usage:
    python -m src.cli.daemon
    python -m src.cli.daemon --verbose
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import NoReturn

from src.lib.config import (
    get_session_config,
    get_settings,
    get_telegram_config,
    get_vault_config,
    get_whisper_config,
)
from src.lib.exceptions import ConfigError
from src.services.llm.assistant import NoteAssistant
from src.services.orchestrator import SessionOrchestrator
from src.services.session.store import SessionStore
from src.services.telegram.bot import TelegramBotAdapter
from src.services.transcription.media import MediaTranscriber
from src.services.transcription.whisper import WhisperTranscriptionService
from src.services.vault.client import ObsidianVaultClient

# Configure logging
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the daemon."""
    level = logging.DEBUG if verbose else logging.INFO
    format_str = "[%(asctime)s] %(levelname)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def validate_configuration() -> bool:
    """Validate all required configuration is present."""
    telegram_config = get_telegram_config()
    whisper_config = get_whisper_config()
    vault_config = get_vault_config()
    settings = get_settings()

    errors = []

    if not telegram_config.is_configured():
        errors.append("Telegram not configured. Set TELEGRAM_BOT_TOKEN in .env file.")

    if not vault_config.api_key:
        errors.append("Obsidian vault not configured. Set OBSIDIAN_API_KEY in .env file.")

    try:
        settings.validate_provider_config()
    except ConfigError as e:
        errors.append(str(e))

    if errors:
        for error in errors:
            logger.error(error)
        return False

    logger.info(f"Whisper: Model {whisper_config.model_name} on {whisper_config.device}")
    logger.info(f"LLM: {settings.llm_provider}")
    logger.info(f"Vault: {vault_config.base_url}/vault/{vault_config.folder}")

    return True


async def run_daemon() -> NoReturn:
    """Main daemon loop."""
    logger.info("Starting voice notes bot daemon...")

    telegram_config = get_telegram_config()
    session_config = get_session_config()

    bot = TelegramBotAdapter(telegram_config)
    store = SessionStore.from_config(session_config)

    transcription_service = WhisperTranscriptionService(get_whisper_config())
    try:
        logger.info("Loading Whisper model...")
        transcription_service.load_model()
        logger.info("Whisper model loaded and ready")
    except Exception as e:
        logger.warning(f"Failed to load Whisper model: {e}")
        logger.warning("Voice and video messages will fail to transcribe")

    transcriber = MediaTranscriber(
        transcription_service,
        downloader=bot,
        download_dir=telegram_config.download_path,
        timeout_seconds=session_config.transcription_timeout_seconds,
    )
    vault = ObsidianVaultClient(get_vault_config())

    orchestrator = SessionOrchestrator(
        transport=bot,
        store=store,
        transcriber=transcriber,
        assistant=NoteAssistant(),
        vault=vault,
        config=session_config,
    )
    bot.on_event(orchestrator.handle_event)

    await bot.start()
    logger.info("Daemon running. Press Ctrl+C to stop.")

    try:
        # Keep running until cancelled
        while True:
            await asyncio.sleep(1)
    except asyncio.CancelledError:
        pass
    finally:
        await bot.stop()
        await vault.close()
        store.clear()
        if transcription_service.is_ready():
            transcription_service.unload_model()
        logger.info("Daemon stopped.")


def signal_handler(signum: int, frame) -> None:
    """Handle shutdown signals gracefully."""
    logger.info(f"Received signal {signum}, initiating shutdown...")
    sys.exit(0)


def main() -> int:
    """Entry point for the daemon."""
    parser = argparse.ArgumentParser(
        description="Voice notes bot daemon",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    # Register signal handlers for graceful shutdown
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("=" * 60)
    logger.info("Voice notes bot")
    logger.info("Transcription is local - Telegram is the channel, Obsidian the store")
    logger.info("=" * 60)

    if not validate_configuration():
        logger.error("Configuration validation failed. Exiting.")
        return 1

    try:
        asyncio.run(run_daemon())
    except KeyboardInterrupt:
        logger.info("Daemon stopped by user.")
    except Exception as e:
        logger.exception(f"Daemon failed with error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

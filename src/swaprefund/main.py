"""Main entry point - runs the refund bot on a cron schedule.

Usage:
    python -m swaprefund             # run on CRONTAB schedule
    python -m swaprefund --once      # run a single refund cycle and exit

Environment variables: see swaprefund.config.Settings
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from pydantic import ValidationError

from swaprefund.chains.base import Fee
from swaprefund.chains.binance import BinanceChainClient
from swaprefund.chains.kava import KavaClient
from swaprefund.config import ConfigError, Settings, get_settings
from swaprefund.refund.orchestrator import CycleReport, RefundOrchestrator
from swaprefund.signing.base import SigningError
from swaprefund.signing.keys import KAVA_PREFIX, network_prefix
from swaprefund.signing.local import LocalSigner

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_crontab(expression: str, name: str) -> CronTrigger:
    try:
        return CronTrigger.from_crontab(expression)
    except ValueError as e:
        raise ConfigError(f"Invalid {name} expression {expression!r}: {e}")


class Application:
    """Refund bot application: clients, orchestrator and scheduler."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.kava_client: Optional[KavaClient] = None
        self.bnb_client: Optional[BinanceChainClient] = None
        self.orchestrator: Optional[RefundOrchestrator] = None
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._shutdown_event = asyncio.Event()

    def build(self) -> RefundOrchestrator:
        """Create signers, chain clients and the orchestrator.

        Raises:
            ConfigError: If configuration is missing or a mnemonic is invalid
        """
        settings = self.settings
        settings.validate_required()

        try:
            kava_signer = LocalSigner.from_mnemonic(
                "KAVA", settings.kava_mnemonic, KAVA_PREFIX
            )
            bnb_signer = LocalSigner.from_mnemonic(
                "BNB",
                settings.binance_chain_mnemonic,
                network_prefix(settings.binance_chain_network),
            )
        except (SigningError, ValueError) as e:
            raise ConfigError(f"Cannot load signing keys: {e}")

        self.kava_client = KavaClient(
            settings.kava_lcd_url,
            kava_signer,
            broadcast_path=settings.kava_broadcast_path,
        )
        self.bnb_client = BinanceChainClient(
            settings.binance_chain_lcd_url,
            bnb_signer,
            network=settings.binance_chain_network,
            timeout=settings.query_timeout_seconds,
        )

        self.orchestrator = RefundOrchestrator(
            self.kava_client,
            self.bnb_client,
            settings.deputy_addresses,
            limit=settings.scan_limit,
            offset_incoming=settings.offset_incoming,
            offset_outgoing=settings.offset_outgoing,
            offset_kava=settings.offset_kava,
            query_timeout=settings.query_timeout_seconds,
            kava_fee=Fee(
                amount=settings.kava_fee_amount,
                denom=settings.kava_fee_denom,
                gas=settings.kava_gas,
            ),
            kava_pacing_seconds=settings.kava_pacing_seconds,
            bnb_pacing_seconds=settings.binance_chain_pacing_seconds,
            dry_run=settings.dry_run,
        )
        return self.orchestrator

    async def connect(self) -> None:
        """Initialize chain clients. Unreachable chains are retried on use."""
        if not await self.kava_client.initialize():
            logger.warning("Kava unreachable at startup, will retry on the next cycle")
        if not await self.bnb_client.initialize():
            logger.warning("Binance Chain unreachable at startup, will retry on the next cycle")

    async def run_once(self) -> CycleReport:
        """Run a single refund cycle."""
        if self.orchestrator is None:
            self.build()
        await self.connect()
        return await self.orchestrator.run()

    async def start(self) -> None:
        """Start the scheduler and wait for shutdown."""
        if self.orchestrator is None:
            self.build()

        refund_trigger = parse_crontab(self.settings.crontab, "CRONTAB")
        report_trigger = parse_crontab(
            self.settings.offset_report_crontab, "OFFSET_REPORT_CRONTAB"
        )

        logger.info("Starting swap refund bot...")
        logger.info(f"Settings: {self.settings.get_safe_dict()}")
        await self.connect()

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.orchestrator.run,
            trigger=refund_trigger,
            id="refund_swaps",
            name="Refund expired swaps",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.orchestrator.log_offsets,
            trigger=report_trigger,
            id="report_offsets",
            name="Report cursor offsets",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Refund cycle scheduled: {self.settings.crontab}")

        await self._shutdown_event.wait()

        self.scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")

    def shutdown(self) -> None:
        """Signal shutdown."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()


def load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Refund expired Kava and Binance Chain swaps")
    parser.add_argument("--once", action="store_true", help="Run one refund cycle and exit")
    parser.add_argument("--env-file", help="Path to a dotenv file (overrides ENV_FILE)")
    args = parser.parse_args(argv)

    if args.env_file:
        os.environ["ENV_FILE"] = args.env_file
        get_settings.cache_clear()

    try:
        settings = load_settings()
        configure_logging(settings.debug)
        app = Application(settings)
        app.build()
    except ConfigError as e:
        configure_logging()
        logger.error(str(e))
        return 1

    if args.once:
        report = asyncio.run(app.run_once())
        if settings.dry_run:
            logger.info(f"Dry-run cycle done: {report.simulated} refunds simulated, none broadcast")
        else:
            logger.info(f"Refund cycle done: {report.refunded} refunds submitted")
        return 0

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, app.shutdown)

    try:
        loop.run_until_complete(app.start())
    except ConfigError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        loop.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())

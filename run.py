"""
Career Relay — job posting aggregator and notifier.
CLI entry point for running the relay on a schedule or once.
"""

import argparse
import logging
import sys
import threading

from config.loader import DEFAULT_CONFIG_PATH, load_config
from config.log_setup import configure_logging
from config.settings import Settings, settings
from models.errors import ConfigError, StoreUnavailable
from pipeline.cycle import CycleReport
from pipeline.scheduler import CycleScheduler, RunOutcome, describe_cron
from pipeline.service import RelayService
from tools.dedup_store import DedupStore
from tools.notifier import ConsoleSink, DiscordWebhookSink, EmailSink


logger = logging.getLogger("career_relay")


def build_sink(kind: str, settings: Settings):
    """Build the requested sink, validating that its settings are present."""
    if kind == "discord":
        if not settings.discord_webhook_url:
            raise ConfigError("DISCORD_WEBHOOK_URL must be set in .env for the discord sink")
        return DiscordWebhookSink(settings.discord_webhook_url, timeout=settings.request_timeout)

    if kind == "email":
        if not (settings.smtp_user and settings.smtp_password and settings.notify_email):
            raise ConfigError("SMTP_USER, SMTP_PASSWORD and NOTIFY_EMAIL must be set in .env for the email sink")
        return EmailSink(
            recipient=settings.notify_email,
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
        )

    return ConsoleSink()


def print_report(report: CycleReport) -> None:
    print(f"\n📊 {report.label}: {report.total_fetched} fetched, {report.matched} matched, {len(report.new)} new")
    if report.delivery:
        d = report.delivery
        print(f"   Sent {len(d.sent)}, failed {len(d.failed)}, dropped {len(d.deferred)}, cancelled {len(d.cancelled)}")
    for source, error in report.failed_sources.items():
        print(f"   ⚠️  {source}: {error}")


def print_stats(store: DedupStore) -> None:
    stats = store.stats()
    print(f"📦 {stats['total']} postings tracked")
    for source, count in sorted(stats["by_source"].items()):
        print(f"   {source}: {count}")


def main(argv=None) -> int:
    """Main entry point for the relay."""
    parser = argparse.ArgumentParser(
        description="Career Relay — job posting aggregator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py
  python run.py --config config/relay.yaml --sink console
  python run.py --once jobs
  python run.py --stats
        """,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help="Path to relay YAML config (default: config/relay.yaml)",
    )
    parser.add_argument(
        "--sink",
        choices=["discord", "email", "console"],
        default="discord",
        help="Where to send new postings (default: discord)",
    )
    parser.add_argument(
        "--once",
        choices=["jobs", "alerts"],
        default=None,
        help="Run a single job-board or alert-mailbox check and exit",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print dedup store statistics and exit",
    )
    parser.add_argument(
        "--no-initial-check",
        action="store_true",
        help="In scheduled mode, wait for the first timer instead of checking immediately",
    )
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"❌ {e}")
        return 1

    try:
        store = DedupStore(settings.db_path).open()
    except StoreUnavailable as e:
        print(f"❌ {e}")
        return 1

    if args.stats:
        print_stats(store)
        store.close()
        return 0

    try:
        sink = build_sink(args.sink, settings)
    except ConfigError as e:
        print(f"❌ {e}")
        store.close()
        return 1

    service = RelayService(config, settings, store, sink)
    scheduler = CycleScheduler(config.schedule, service.handlers)

    # ── Single run mode ──────────────────────────────────────
    if args.once:
        name = "job_check" if args.once == "jobs" else "alert_check"
        try:
            report = service.handlers[name]()
            print_report(report)
            return 0
        except StoreUnavailable as e:
            print(f"❌ {name} failed: {e}")
            return 1
        except KeyboardInterrupt:
            print("\n\n⛔ Interrupted by user.")
            return 1
        finally:
            service.shutdown()

    # ── Scheduled mode ───────────────────────────────────────
    print("=" * 60)
    print("  📡 Career Relay")
    print("=" * 60)
    print(f"  Sink:     {args.sink}")
    print(f"  Jobs:     {describe_cron(config.schedule.job_check) if config.schedule.job_check else 'disabled'}")
    print(f"  Alerts:   {describe_cron(config.schedule.alert_check) if config.schedule.alert_check else 'disabled'}")
    print(f"  Batch:    {config.delivery.max_batch_size} per cycle, {config.delivery.post_delay_seconds}s apart")
    print("=" * 60)
    print()

    scheduler.start()
    stopped = threading.Event()

    try:
        if not args.no_initial_check:
            logger.info("Running initial job check...")
            if scheduler.trigger("job_check") == RunOutcome.FAILED:
                logger.warning("Initial job check failed; the schedule continues")
        print("   Press Ctrl+C to stop.\n")
        while not stopped.wait(1.0):
            pass
    except KeyboardInterrupt:
        print("\n\n⛔ Relay stopped.")
    finally:
        scheduler.stop()
        service.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Entry point for battstatus.

Monitors the laptop battery for changes in state. By default it reports power
broadcast events and changes to the battery charge status and percentage
remaining; with -v it reports every power status field on any change.
"""

import argparse
import signal
import sys
import threading
from typing import List, Optional

from battstatus import __version__
from battstatus.config import ConfigManager
from battstatus.logger import cleanup_old_logs, setup_logging
from battstatus.monitor import PowerMonitor
from battstatus.notifier import PowerNotifier
from battstatus.source import create_source


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv: Argument list, sys.argv[1:] if None

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="battstatus",
        description="Monitor the laptop battery for changes in state.",
        epilog="Short options combine, e.g. -pvv is the same as -p -v -v.",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=None,
        help="Show all power status fields on any change (-vvv also logs every tick)",
    )
    parser.add_argument(
        "-p", "--prevent-sleep", action="store_true", default=None,
        help="Keep the computer in a working state (away mode) while monitoring",
    )
    parser.add_argument(
        "--lifetime-span", type=int, metavar="MINUTES", default=None,
        help="Average the remaining battery time over this many minutes (0 disables)",
    )
    parser.add_argument(
        "--no-notifications", action="store_false", dest="enable_notifications", default=None,
        help="Log advisory signals without desktop notifications",
    )
    parser.add_argument("--config", default="config.json", help="Configuration file path")
    parser.add_argument("--log-dir", default="data/logs", help="Directory for log files")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


class BattStatusApp:
    """Wires configuration, logging, power source, notifier and monitor together."""

    def __init__(self, args: argparse.Namespace):
        self.config = ConfigManager(args.config)
        self.config.update({
            "verbose": args.verbose,
            "prevent_sleep": args.prevent_sleep,
            "lifetime_span_minutes": args.lifetime_span,
            "enable_notifications": args.enable_notifications,
        })

        self.logger = setup_logging(self.config, args.log_dir)
        cleanup_old_logs(args.log_dir, self.config.get("log_retention_days", 30))

        self.notifier = PowerNotifier(self.config) if self.config.get("enable_notifications") else None
        self.monitor = PowerMonitor(self.config, create_source(), self.notifier)
        self.shutdown_event = threading.Event()

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        """Handle shutdown signals gracefully."""
        self.logger.debug(f"Received signal {signum}, shutting down...")
        self.shutdown_event.set()

    def run(self):
        """Monitor until interrupted."""
        self.logger.debug(f"Settings: {self.config.get_all()}")
        self.monitor.start()
        try:
            # Wait in short steps so signals are handled promptly on every platform
            while not self.shutdown_event.wait(timeout=0.5):
                pass
        finally:
            self.monitor.stop()


def main(argv: Optional[List[str]] = None):
    """Entry point for the application."""
    try:
        app = BattStatusApp(parse_args(argv))
        app.run()

    except KeyboardInterrupt:
        print("\nShutdown requested by user")

    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()

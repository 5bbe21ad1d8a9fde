"""
Legacy PLC Simulator - Entry Point
===================================
Run the scan-cycle engine with its control and management ports.

Usage:
  python main.py                      # physical mode, ports 9001/8001
  python main.py --mode virtual       # VM deployment, ports 9901/8901
  python main.py --config plc.json    # settings from JSON
  python main.py --version
  python main.py --help

Environment (as set by the systemd unit):
  PLC_MODE, PLC_CONTROL_PORT, PLC_MGMT_PORT,
  PLC_CYCLE_MS, PLC_LOG_PATH, PLC_STOP_MARKER
"""

import argparse
import logging
import signal
import sys

from legacy_plc import DEVICE_NAME, DEVICE_MODEL, __version__
from legacy_plc.config.settings import PLCConfig, TRANSPORT_MODES
from legacy_plc.core.scheduler import ScanScheduler

logger = logging.getLogger("legacy_plc")


def version_string(config: PLCConfig) -> str:
    return f"{DEVICE_NAME} v{__version__} ({config.transport_mode} build)"


def build_parser(defaults: PLCConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"{DEVICE_NAME} - {DEVICE_MODEL}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "endpoints:\n"
            f"  control protocol     {defaults.control_endpoint}  (ASCII/TCP)\n"
            f"  management protocol  {defaults.management_endpoint}  (HTTP/JSON)\n"
            f"  data log             {defaults.log_path}"
        ),
    )
    parser.add_argument(
        "--version", action="version", version=version_string(defaults),
    )
    parser.add_argument(
        "--mode", choices=TRANSPORT_MODES,
        help="Deployment target (selects default ports and simulation)"
    )
    parser.add_argument(
        "--config",
        help="Path to settings JSON file"
    )
    parser.add_argument(
        "--control-port", type=int,
        help="Control protocol TCP port"
    )
    parser.add_argument(
        "--mgmt-port", type=int,
        help="Management protocol TCP port"
    )
    parser.add_argument(
        "--cycle-ms", type=int,
        help="Scan period in milliseconds"
    )
    parser.add_argument(
        "--log-path",
        help="Cycle data log file"
    )
    parser.add_argument(
        "--stop-marker",
        help="Emergency stop marker file"
    )
    parser.add_argument(
        "--seed", type=int,
        help="Random seed for the input simulator"
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    parser.add_argument(
        "--log-file",
        help="Log to file instead of stderr"
    )
    return parser


def build_config(args, environ: dict = None) -> PLCConfig:
    """Merge JSON, environment and command-line settings."""
    overrides = {
        "transport_mode": args.mode,
        "control_port": args.control_port,
        "management_port": args.mgmt_port,
        "cycle_period_ms": args.cycle_ms,
        "log_path": args.log_path,
        "stop_marker_path": args.stop_marker,
        "random_seed": args.seed,
    }
    return PLCConfig.load(args.config, environ=environ, overrides=overrides)


def main(argv=None, environ: dict = None) -> int:
    try:
        defaults = PLCConfig.from_env(environ)
    except ValueError as exc:
        print(f"Invalid environment: {exc}", file=sys.stderr)
        return 2

    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    # Configure logging
    log_kwargs = {
        "level": getattr(logging, args.log_level),
        "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    }
    if args.log_file:
        log_kwargs["filename"] = args.log_file
    logging.basicConfig(**log_kwargs)

    try:
        config = build_config(args, environ)
    except ValueError as exc:
        parser.error(str(exc))

    logger.info("=== %s ===", version_string(config).upper())
    logger.info("Simulating: %s", DEVICE_MODEL)
    logger.info("Protocol: ASCII/TCP (Pre-OPC UA), scan rate %d ms", config.cycle_period_ms)

    scheduler = ScanScheduler(config)

    # Handle SIGINT/SIGTERM gracefully
    def signal_handler(sig, frame):
        scheduler.request_stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        scheduler.start(blocking=True)
    finally:
        scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())

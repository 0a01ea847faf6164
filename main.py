"""
Network Disconnect Analyzer
Entry point: configures logging, then runs one analysis pass.
"""

import logging
import os
import sys
import traceback


def setup_logging(verbose: bool = False) -> str:
    """Configure logging with file and console handlers."""
    log_dir = os.path.join(os.path.expanduser("~"), ".netdisconnect")
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, "netdisconnect.log")

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)

    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s  %(levelname)-8s  %(name)-25s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            console,
        ],
    )

    return log_file


def main(argv=None):
    from netdisconnect import __version__
    from netdisconnect.cli import parse_args, run

    args = parse_args(argv)
    log_file = setup_logging(args.verbose)
    logger = logging.getLogger("main")
    logger.info("=" * 60)
    logger.info(f"Network Disconnect Analyzer {__version__} starting")
    logger.info(f"Log file: {log_file}")
    logger.info(f"Python: {sys.version}")

    try:
        code = run(args)
    except Exception:
        logger.critical("Fatal error:\n" + traceback.format_exc())
        print(f"Fatal error, details have been written to {log_file}", file=sys.stderr)
        sys.exit(1)

    logger.info(f"Finished with exit code {code}")
    sys.exit(code)


if __name__ == "__main__":
    main()

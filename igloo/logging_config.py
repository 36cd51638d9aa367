#!/usr/bin/env python3

"""
Logging setup for the igloo command line. The library itself only creates
module loggers and never configures handlers on import.
"""

import logging


def setup_logging(debug: bool = False) -> None:
    """Configure the root logger for command line use."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    # urllib3 logs every connection at debug
    logging.getLogger("urllib3").setLevel(logging.WARNING)

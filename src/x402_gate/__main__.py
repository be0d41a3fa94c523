"""
Run the x402 gate server: ``python -m x402_gate`` or ``x402-gate``
"""

import logging
import sys

import uvicorn

from x402_gate.config import load_config
from x402_gate.exceptions import ConfigurationError
from x402_gate.fastapi import create_app
from x402_gate.logging_config import setup_logging

logger = logging.getLogger("x402_gate")


def main() -> None:
    try:
        config = load_config()
    except ConfigurationError as e:
        setup_logging()
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    setup_logging(config.log_level)

    try:
        app = create_app(config)
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        sys.exit(1)

    uvicorn.run(app, host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    main()

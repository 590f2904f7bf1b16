# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Runtime bootstrap for relpack.

The one-time setup that happens after the config is loaded and before the
pipeline starts: apply the configured log level (and log file) to every
logger, then log which host is doing the build. The host matters when
reading a failed cross-compile, since the same target can build fine on one
runner image and fail on another.
"""

import logging
import platform
from pathlib import Path
from typing import Optional

from relpack.config.schema import GlobalConfig
from relpack.logging.logger import configure_package_logging, get_logger


def bootstrap(config: GlobalConfig, log_level: Optional[str] = None) -> logging.Logger:
    """
    Put the process into a known state and return the runtime logger.

    Args:
        config: The validated global configuration.
        log_level: Overrides `config.log_level` (the CLI's --log-level).

    Returns:
        The "relpack.runtime" logger.

    Raises:
        OSError: If the configured log file can't be created or opened.
    """
    level = log_level or config.log_level
    log_file = Path(config.log_file) if config.log_file is not None else None

    logger = get_logger("relpack.runtime", log_level=level)
    configure_package_logging(level, log_file=log_file)

    logger.info(
        "relpack bootstrap complete",
        extra={
            "python_version": platform.python_version(),
            "platform": platform.system(),
            "architecture": platform.machine(),
        },
    )
    return logger

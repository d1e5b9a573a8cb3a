"""
Component logging helpers.

Every module logs through a named stdlib logger under the ``vzau`` namespace.
This module provides a factory returning plain log functions bound to a
component logger, so call sites stay short.

Usage:
    from shared.log import create_logger
    log_trace, log_debug, log_info, log_warn, log_error = create_logger("Sync")
    log_info("Fetched 42 records")  # -> vzau.sync: [Sync] Fetched 42 records
"""

import logging

# Below DEBUG; only visible when the root level is lowered explicitly
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ROOT_LOGGER_NAME = "vzau"


def create_logger(component: str = ""):
    """Create log functions for a component.

    Args:
        component: Component name. If provided, the logger is
                   ``vzau.<component lowercased>`` and messages are prefixed
                   with ``[component]``; otherwise the root ``vzau`` logger
                   is used without a prefix.

    Returns:
        Tuple of (log_trace, log_debug, log_info, log_warn, log_error) functions.
    """
    if component:
        logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component.lower().replace(' ', '_')}")
        prefix = f"[{component}] "
    else:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        prefix = ""

    def log_trace(msg): logger.log(TRACE, f"{prefix}{msg}")
    def log_debug(msg): logger.debug(f"{prefix}{msg}")
    def log_info(msg): logger.info(f"{prefix}{msg}")
    def log_warn(msg): logger.warning(f"{prefix}{msg}")
    def log_error(msg): logger.error(f"{prefix}{msg}")

    return log_trace, log_debug, log_info, log_warn, log_error

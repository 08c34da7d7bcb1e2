# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Logging utilities for the mail dispatch package.

This module provides a centralized logging helper. The actual logging setup
(level, handlers, format) belongs to the entry point, which calls
``logging.basicConfig()`` once; library modules only ask for named loggers.

Example:
    Typical usage in a module::

        from mail_dispatch.logger import get_logger

        logger = get_logger("Dispatcher")
        logger.info("Mail sent")
"""

import logging


def get_logger(name: str = "MailDispatch") -> logging.Logger:
    """Retrieve a logger instance for the given name.

    No handlers or formatters are attached here; that responsibility lies
    with the application entry point.

    Args:
        name: The logger name. Defaults to "MailDispatch".

    Returns:
        A ``logging.Logger`` instance bound to the given name.
    """
    return logging.getLogger(name)

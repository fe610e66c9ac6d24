"""Logging configuration"""
import logging
import sys
from typing import Optional, Union

PACKAGE_LOGGER_PREFIX = "untis_watch"


def setup_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Set up and return a logger instance"""
    logger = logging.getLogger(name)
    
    if level is None:
        level = logging.INFO
    
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(level)
    
    return logger


def set_log_level(level: Union[int, str]) -> None:
    """Apply a level to every logger created by this package"""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith(PACKAGE_LOGGER_PREFIX) and isinstance(logger, logging.Logger):
            logger.setLevel(level)

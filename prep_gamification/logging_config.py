"""Logging setup shared by host applications and scripts"""
import logging

from prep_gamification.config import LOG_LEVEL

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging with the standard format"""
    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, level.upper(), logging.INFO)
    )

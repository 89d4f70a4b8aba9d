import logging
import os
from logging.handlers import RotatingFileHandler

import colorlog


def setup_logging(level: str = None) -> None:
    """Configure the centralised logging settings.

    Args:
        level: Overrides ``LISTENING_LAB_LOG_LEVEL`` when given.
    """
    log_level = (level or os.getenv('LISTENING_LAB_LOG_LEVEL', 'WARNING')).upper()
    log_file = os.getenv('LISTENING_LAB_LOG_FILE')
    max_bytes = int(os.getenv('LOG_FILE_MAX_BYTES', '10485760'))  # 10 MB
    backup_count = int(os.getenv('LOG_FILE_BACKUP_COUNT', '5'))

    logger = logging.getLogger()
    logger.setLevel(log_level)

    if not logger.hasHandlers():
        console_handler = logging.StreamHandler()
        console_formatter = colorlog.ColoredFormatter(
            "%(log_color)s%(levelname)s:%(name)s:%(message)s",
            log_colors={
                'DEBUG': 'bold_blue',
                'INFO': 'bold_green',
                'WARNING': 'bold_yellow',
                'ERROR': 'bold_red',
                'CRITICAL': 'bold_purple'
            }
        )
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

        if log_file:
            file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
            file_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s - (%(filename)s:%(lineno)d)'
            )
            file_handler.setFormatter(file_formatter)
            logger.addHandler(file_handler)

    # The Roon SDK is chatty at INFO.
    if log_level != 'DEBUG':
        logging.getLogger('roonapi').setLevel(logging.WARNING)

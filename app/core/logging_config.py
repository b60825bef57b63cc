# app/core/logging_config.py

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", log_dir: str = None) -> None:
    """
    Configura el root logger: consola siempre y, si hay log_dir, un archivo
    rotativo (10MB, 5 respaldos). Llamarlo una sola vez al arrancar.
    """
    root_logger = logging.getLogger()
    if getattr(root_logger, "_checkin_configured", False):
        return
    root_logger.setLevel(level.upper())

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, "app.log")
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logging.info(f"Logging configurado. Archivo de log: {log_file}")

    root_logger._checkin_configured = True

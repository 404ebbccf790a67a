import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# "app" is also the name of app.logger, since the factory lives in app.py
APP_LOGGERS = ("app", "services", "routes", "utils")


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    handlers = [logging.StreamHandler()]
    if app.config.get("LOG_TO_FILE"):
        log_dir = app.config["LOG_DIR"]
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(RotatingFileHandler(
            os.path.join(log_dir, "system.log"),
            maxBytes=1024 * 1024,
            backupCount=5,
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)

    for name in APP_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.handlers = list(handlers)
        logger.propagate = False


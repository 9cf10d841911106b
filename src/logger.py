import sys
import os
import logging
from dotenv import load_dotenv

from config.config import settings
from loguru import logger

load_dotenv()

class SingletonLogger():
    """
    Process-wide loguru logger for the marketplace API.

    Logs to stdout at `LOG_LEVEL` (INFO by default). With `DEPLOYMENT=CLOUD` records go to
    Google Cloud Logging under the app name from settings instead.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.setup_logger()
        return cls._instance

    def setup_logger(self):
        logger.remove()

        log_level = os.getenv('LOG_LEVEL') or 'INFO'
        deployment = os.getenv('DEPLOYMENT')
        if deployment == 'CLOUD':
            from google.cloud import logging as g_logging
            from google.cloud.logging.handlers import CloudLoggingHandler

            g_client = g_logging.Client(project=settings.GCP.PROJECT_ID)
            g_client.setup_logging(log_level=logging.WARNING)
            g_logging_handler = CloudLoggingHandler(client=g_client, name=settings.App.NAME)
            logger.add(sink=g_logging_handler, level=log_level)
        else:
            logger.add(sink=sys.stdout, level=log_level)

    def get_logger(self):
        return logger

logger = SingletonLogger().get_logger()

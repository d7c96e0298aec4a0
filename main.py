#!/usr/bin/env python3
import logging
from dotenv import load_dotenv

from config.settings import get_app_config
from schedule_engine.consumer import start_consumer

logger = logging.getLogger(__name__)


def configure_logging():
    app_config = get_app_config()
    level = "DEBUG" if app_config["debug"] else app_config["log_level"].upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


if __name__ == "__main__":
    # Load environment variables before reading any configuration
    load_dotenv()
    configure_logging()

    try:
        logger.info("Starting schedule engine consumer")
        start_consumer()
    except KeyboardInterrupt:
        logger.info("Consumer stopped by user")
    except Exception as e:
        logger.error(f"An error occurred: {e}", exc_info=True)

"""
Command-line interface for HN Digest.
"""
import sys
import argparse
import logging
import asyncio
import dataclasses
from datetime import datetime

from dotenv import load_dotenv

from hndigest.config import load_settings
from hndigest.workflow import Workflow

logger = logging.getLogger(__name__)

EXIT_CODE_SUCCESS = 0
EXIT_CODE_FAILURE = 1


def configure_logging(level: str = "INFO"):
    """Log to a dated file and to the console."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(f"hndigest_{datetime.now().strftime('%Y%m%d')}.log"),
            logging.StreamHandler()
        ]
    )


def parse_args(argv=None):
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description="HN Digest - Hacker News scraper and summarizer")
    parser.add_argument("--config", help="Path to a YAML or JSON config file")
    parser.add_argument("--top-pages", type=int, help="Number of front pages to scrape")
    parser.add_argument("--front-day", help="Scrape /front for this day (YYYY-MM-DD) instead of the latest pages")
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    return parser.parse_args(argv)


async def async_main(argv=None) -> int:
    """
    Load settings, build the workflow and run it once.
    """
    load_dotenv(override=True)
    args = parse_args(argv)
    configure_logging(args.log_level)

    settings = load_settings(args.config)
    overrides = {}
    if args.top_pages is not None:
        overrides['max_top_pages'] = args.top_pages
    if args.front_day:
        overrides['front_day'] = args.front_day
    if overrides:
        settings = dataclasses.replace(
            settings,
            workflow=dataclasses.replace(settings.workflow, **overrides),
        )

    logger.info("Starting HN Digest")
    workflow = await Workflow.create(settings)
    await workflow.run()
    logger.info("Workflow completed successfully")
    return EXIT_CODE_SUCCESS


def main(argv=None):
    """
    Entry point for the command-line script.
    """
    try:
        return asyncio.run(async_main(argv))
    except KeyboardInterrupt:
        logger.info("Process interrupted by user")
        return EXIT_CODE_FAILURE
    except Exception as e:
        logger.exception(f"Workflow execution error: {e}")
        return EXIT_CODE_FAILURE


if __name__ == "__main__":
    sys.exit(main())

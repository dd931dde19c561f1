from dotenv import load_dotenv
import os
import json
import asyncio
import logging

from app.config import CrawlConfig
from crawler.runner import crawl
from crawler.sinks import JsonLinesSink

load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = "output/jobs.jsonl"


def load_config() -> CrawlConfig:
    """Env config, replaced by the JSON input file when JOBCRAWL_INPUT is set."""
    input_path = os.getenv("JOBCRAWL_INPUT")
    if not input_path:
        return CrawlConfig.from_env()

    with open(input_path, encoding="utf-8") as f:
        data = json.load(f)
    logger.info(f"Loaded crawl input from {input_path}")
    return CrawlConfig.from_input(data)


async def run():
    config = load_config()
    sink = JsonLinesSink(os.getenv("JOBCRAWL_OUTPUT", DEFAULT_OUTPUT))
    state = await crawl(config, sink)
    logger.info(f"Wrote {sink.count} job(s) to {sink.path} (saved {state.saved_count})")


if __name__ == "__main__":
    asyncio.run(run())

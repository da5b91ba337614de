"""
Weather Blend: adaptive weighted-ensemble forecast server

Fetches NWS + OpenWeatherMap + Weatherbit, blends them with weights that
adapt every hour, and serves the result over HTTP.

Usage:
    python main.py                 # serve the API and run the schedule
    python main.py --once          # run one hourly + one weekly cycle, print JSON
    python main.py --no-scheduler  # serve the API without background cycles
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv

from weather_blend.api import create_app
from weather_blend.config import Settings
from weather_blend.providers import build_providers
from weather_blend.scheduler import ForecastScheduler

# Load environment variables
load_dotenv()

# Ensure logs directory exists
os.makedirs("logs", exist_ok=True)

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler("logs/weather_blend.log", mode='a', encoding='utf-8'),
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='Weather Blend - adaptive weighted-ensemble forecast server'
    )
    parser.add_argument('--host', help='Bind address (default: $HOST or 0.0.0.0)')
    parser.add_argument('--port', type=int, help='Bind port (default: $PORT or 3000)')
    parser.add_argument('--no-scheduler', action='store_true',
                        help='Serve the API without running the update cycles')
    parser.add_argument('--once', action='store_true',
                        help='Run one hourly and one weekly cycle, print the forecast and exit')
    return parser.parse_args()


async def run_once(scheduler: ForecastScheduler) -> int:
    await scheduler.run_hourly_cycle()
    await scheduler.run_weekly_cycle()
    print(json.dumps(scheduler.snapshot(), indent=2))
    return 0


def main() -> int:
    args = parse_args()
    settings = Settings.from_env()
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port
    if args.no_scheduler:
        settings.run_scheduler = False

    scheduler = ForecastScheduler(settings, build_providers(settings))

    if args.once:
        return asyncio.run(run_once(scheduler))

    import uvicorn

    app = create_app(scheduler, settings)
    logger.info(f"Weather backend listening on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())

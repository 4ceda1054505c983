#!/usr/bin/env python3
"""
Pack Curator: анализ сборки модов и admin API.
По умолчанию пишет отчет и запускает API на порту 11000.
"""

import argparse
import asyncio
import logging
import os
import signal
import sys

import uvicorn

from .curator import PackCurator
from .curator_config import init_settings


logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pack-curator", description="Mod pack dependency report and toggles")
    parser.add_argument("--report", action="store_true", help="write the report and exit")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("--config", default=None, help="settings file (YAML or JSON)")
    parser.add_argument("--root", default=None, help="pack root directory")
    parser.add_argument("--host", default=os.getenv("PACK_CURATOR_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PACK_CURATOR_PORT", "11000")))
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    settings = init_settings(args.config, root_dir=args.root)

    if args.report:
        curator = PackCurator(settings)
        asyncio.run(curator.generate_report())
        logger.info("📝 Report generated.")
        return

    print("🚀 Запуск Pack Curator...")

    def handle_signal(signum, frame):
        print("\n🔻 Получен сигнал остановки, завершение работы...")
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    from .app import create_app

    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port, log_level="debug" if args.debug else "info")


if __name__ == "__main__":
    main()

"""Program entry point (CLI dispatcher)."""
from __future__ import annotations
import logging
from config.settings import LOG_LEVEL, LOG_FILE
from src.cli.commands import cli

def configure_logging(level: str = LOG_LEVEL, filename: str | None = LOG_FILE) -> None:
	logging.basicConfig(
		level=getattr(logging, level.upper(), logging.WARNING),
		filename=filename,
		format='%(asctime)s %(levelname)s %(name)s: %(message)s'
	)

def main():  # pragma: no cover - thin wrapper
	configure_logging()
	cli()

if __name__ == '__main__':  # pragma: no cover
	main()

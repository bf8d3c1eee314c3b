"""Main entry point for the MongoDB exporter."""
import argparse
import json
import logging
import signal
import sys
import threading

from mongodb_exporter.config import load_config
from mongodb_exporter.connection import MongoConnector
from mongodb_exporter.control_api import ControlAPI
from mongodb_exporter.engine import ScrapeCoordinator
from mongodb_exporter.prom_exporter import PrometheusExporter, SelfMetrics


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


def setup_logging(log_level: str, log_format: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    datefmt = "%Y-%m-%d %H:%M:%S"

    if log_format == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter(datefmt=datefmt))
        logging.basicConfig(level=level, handlers=[handler])
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt=datefmt
        )

    # Reduce noise from some libraries
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="MongoDB Exporter - Publish MongoDB diagnostics as Prometheus metrics"
    )
    parser.add_argument(
        "--config",
        "-c",
        help="Path to configuration YAML file"
    )
    parser.add_argument(
        "--log-level",
        help="Override the configured log level"
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(args.log_level or config.global_.log_level, config.global_.log_format)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("MongoDB Exporter")
    logger.info("=" * 60)
    logger.info(f"Configuration loaded from: {args.config or 'defaults'}")
    logger.info(f"Per-command timeout: {config.collectors.max_time_ms}ms")

    connector = MongoConnector(config.mongodb)
    exporter = PrometheusExporter(config.web)
    self_metrics = SelfMetrics(registry=exporter.registry)

    try:
        coordinator = ScrapeCoordinator(config, connector, self_metrics=self_metrics)
        exporter.register(coordinator)
        exporter.start()
    except Exception as e:
        logger.error(f"Failed to initialize exporter: {e}", exc_info=True)
        connector.close()
        sys.exit(1)

    stop_event = threading.Event()

    # Setup signal handlers
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        exporter.stop()
        connector.close()
        stop_event.set()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if not config.web.control_api_enabled:
        stop_event.wait()
        return

    # Run control API (blocking)
    control_api = ControlAPI(coordinator)
    logger.info(f"Starting control API on port {config.web.control_api_port}")
    try:
        control_api.run(
            host=config.web.listen_address,
            port=config.web.control_api_port
        )
    except Exception as e:
        logger.error(f"Control API error: {e}", exc_info=True)
        exporter.stop()
        connector.close()
        sys.exit(1)

    # uvicorn handles SIGINT/SIGTERM itself and returns here.
    logger.info("Control API stopped, shutting down...")
    exporter.stop()
    connector.close()


if __name__ == "__main__":
    main()

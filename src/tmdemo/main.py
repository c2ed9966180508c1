"""Main entry point for the Traffic Manager sample.

Authenticates, provisions the scenario, exercises the Traffic Manager
profile and tears everything down again. The resource group is deleted
even when a step fails.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import UTC, datetime

from azure.core.exceptions import AzureError, ClientAuthenticationError

from .clients import create_clients
from .config import Config, ConfigurationError, LogFormat
from .credentials import CredentialConfigurationError, get_credential, resolve_subscription_id
from .scenario_loader import ScenarioLoadError, load_scenario
from .workflow import TrafficManagerWorkflow

CONSOLE_HANDLER_NAME = "tmdemo-console"

# Attributes every LogRecord carries; anything else came in through extra=
_STANDARD_RECORD_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    )
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_format: LogFormat = LogFormat.TEXT, level: str = "INFO") -> None:
    """Configure console logging.

    Text mode prints the progress messages as plain lines; JSON mode emits
    one object per line including the structured extra fields.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(CONSOLE_HANDLER_NAME)
    if log_format == LogFormat.JSON:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    # Replace the handler from a previous call, leave foreign handlers alone
    for existing in list(root_logger.handlers):
        if existing.get_name() == CONSOLE_HANDLER_NAME:
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    # Reduce noise from Azure SDK
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


async def main(config: Config | None = None) -> int:
    """Run the sample.

    Args:
        config: Preloaded configuration; loaded from the environment if None.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    if config is None:
        try:
            config = Config.from_env()
        except ConfigurationError as e:
            setup_logging()
            logging.getLogger(__name__).error(f"Configuration error: {e}")
            return 1

    setup_logging(config.log_format, config.log_level)
    logger = logging.getLogger(__name__)

    try:
        scenario = load_scenario(config.scenario_file)
    except ScenarioLoadError as e:
        logger.error(f"Scenario loading failed: {e}")
        return 1

    try:
        credential = get_credential(config)
        subscription_id = await asyncio.get_event_loop().run_in_executor(
            None, resolve_subscription_id, credential, config
        )
    except CredentialConfigurationError as e:
        logger.error(f"Credential configuration error: {e}")
        return 1
    except ClientAuthenticationError as e:
        logger.error(f"Authentication failed: {e}")
        return 1
    except AzureError as e:
        logger.error(f"Failed to resolve subscription: {e}")
        return 1

    logger.info(
        "Starting Traffic Manager sample",
        extra={
            "subscription_id": subscription_id,
            "location": config.resource_group_location,
            "regions": scenario.regions,
        },
    )

    clients = create_clients(credential, subscription_id)
    workflow = TrafficManagerWorkflow(config, scenario, clients)
    try:
        await workflow.run()
    except Exception as e:
        logger.exception("Sample failed", extra={"error": str(e)})
        return 1
    finally:
        clients.close()

    logger.info(
        "Sample completed successfully",
        extra={"duration_seconds": workflow.result.duration_seconds},
    )
    return 0


def run() -> None:
    """Entry point for running the sample without the CLI."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

import logging
import os
import sys
from pathlib import Path

from pubflow.rules.models import Rules

logger = logging.getLogger(__name__)


def validate_ops_rules(rules: Rules, data_dir: Path) -> None:
    """
    Validate operational requirements before startup.

    Exits the process when a required environment variable is missing.
    """
    # 1. Data dir must be writable for the SQLite store
    data_dir.mkdir(parents=True, exist_ok=True)
    if not os.access(data_dir, os.W_OK):
        logger.critical("Data directory %s is not writable", data_dir)
        sys.exit(1)

    # 2. Required env
    missing = [name for name in rules.ops.required_env if name not in os.environ]
    if missing:
        logger.critical("Missing required environment variables: %s", ", ".join(missing))
        sys.exit(1)

    # 3. Webhook secret is optional; without it the callback refuses everything
    #    unless require_secret is off
    if not os.environ.get(rules.webhook.secret_env):
        logger.warning(
            "%s is not set; CMS publish confirmations will be %s",
            rules.webhook.secret_env,
            "refused" if rules.webhook.require_secret else "accepted unauthenticated",
        )

    logger.info("Configuration validated")

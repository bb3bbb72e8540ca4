"""
Background job to reconcile tenants stuck in PENDING

Run periodically (e.g. via cron):

    python -m rms_tenancy.scripts.reap_stale_tenants [--action report|retry|reap]

Without --action the STALE_PENDING_ACTION setting applies.
"""

import argparse
import sys
from typing import List, Optional

from sqlmodel import Session
import structlog

from rms_tenancy.core.config import get_settings
from rms_tenancy.core.database import get_engine
from rms_tenancy.core.exceptions import RMSError
from rms_tenancy.core.logging_config import setup_logging
from rms_tenancy.services.provisioner import SchemaProvisioner
from rms_tenancy.services.reconciler import ACTIONS, reconcile_stale_tenants

logger = structlog.get_logger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the reconciliation job"""
    parser = argparse.ArgumentParser(description="Reconcile tenants stuck in PENDING")
    parser.add_argument("--action", choices=ACTIONS, default=None)
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.DEBUG)
    logger.info("Starting stale tenant reconciliation job")

    engine = get_engine()
    try:
        with Session(engine) as session:
            results = reconcile_stale_tenants(
                session,
                SchemaProvisioner(engine),
                settings=settings,
                action=args.action,
            )
    except RMSError as e:
        logger.error(f"Fatal error in reconciliation job: {e.message}")
        return 1

    logger.info(f"Stale tenant reconciliation job complete: {results}")
    return 1 if results["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())

"""Rebuild the embedded assignment lists on tasks and users from task_assignments.

Run after restoring data or importing records written by older versions:

    python scripts/reconcile_assignments.py
"""

from __future__ import annotations

import argparse
import logging
import sys

from taskapi.config import get_settings
from taskapi.database import SessionLocal, ensure_schema
from taskapi.errors import StorageError
from taskapi.logging_config import setup_logging
from taskapi.services.assignment_service import AssignmentService

logger = logging.getLogger("taskapi.assignments")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.parse_args()

    settings = get_settings()
    setup_logging(log_dir=settings.log_path, debug=settings.debug)

    ensure_schema()
    db = SessionLocal()
    try:
        report = AssignmentService.reconcile_mirrors(db)
    except StorageError as exc:
        logger.error("Reconciliation failed: %s (%s)", exc.message, exc.details.get("error"))
        return 1
    finally:
        db.close()

    logger.info(
        "Done: %s task(s) and %s user(s) repaired, %s orphaned assignment(s) removed",
        report.tasks_repaired,
        report.users_repaired,
        report.orphans_removed,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

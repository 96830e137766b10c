import logging
from sqlalchemy.orm import Session

from database import SessionLocal
from crud.reconciliation import reconcile_balances

logger = logging.getLogger(__name__)


def run_balance_check():
    """
    Nightly consistency check of cached supplier balances.

    Runs in report-only mode: drift is logged as warnings for an admin to
    review and repair through ``POST /suppliers/reconciliation``.
    """
    logger.info("Starting nightly balance reconciliation check.")
    db: Session = SessionLocal()
    try:
        drift = reconcile_balances(db, fix=False)
        if drift:
            logger.warning(f"Nightly balance check found {len(drift)} suppliers with drift.")
        else:
            logger.info("Nightly balance check completed; all balances consistent.")
        return drift
    except Exception:
        logger.exception("Nightly balance check failed.")
        raise
    finally:
        db.close()

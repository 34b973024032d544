import logging
from sqlalchemy.orm import Session

from database import SessionLocal
from crud.stock_sync import reconcile_stock_cache

logger = logging.getLogger(__name__)


def run_stock_reconciliation():
    """
    Compares every material's cached stock with its ledger balance and repairs drift.

    Drift only appears when something wrote to materials.current_stock outside
    the ledger (manual SQL, an interrupted legacy job). Each corrected material
    is logged as a warning by the reconcile itself.
    """
    logger.info("Starting scheduled stock reconciliation.")
    db: Session = SessionLocal()
    try:
        result = reconcile_stock_cache(db, repair=True)
        logger.info(f"Stock reconciliation finished: {result['checked']} checked, {len(result['drift'])} repaired.")
        return result
    except Exception as e:
        logger.error(f"Error during stock reconciliation task: {e}", exc_info=True)
        db.rollback()
    finally:
        db.close()

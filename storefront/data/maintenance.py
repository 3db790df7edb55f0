# storefront/data/maintenance.py
"""
Jednorazowe operacje uruchamiane lokalnie, poza limitem czasu crona.

    python -m storefront.data.maintenance bulk-normalize --batch-size 50
    python -m storefront.data.maintenance recalc-parents

Ctrl+C jest bezpieczne: kazdy wiersz commitowany osobno.
"""
import argparse

from storefront.data.database import SessionLocal, init_db
from storefront.services.classifier import NameClassifier
from storefront.services.normalization_service import NormalizationService
from storefront.services.stock_service import StockService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def bulk_normalize(batch_size: int = 50, max_batches: int | None = None):
    db = SessionLocal()
    try:
        svc = NormalizationService(db, NameClassifier())
        result = svc.normalize_all(batch_size, max_batches=max_batches)
    finally:
        db.close()

    logger.info(
        f"Bulk normalization done: {result.normalized} normalized, {result.fallen_back} parked, "
        f"{len(result.errors)} errors, rate_limited={result.rate_limited}"
    )
    return result


def recalc_parents() -> int:
    db = SessionLocal()
    try:
        return StockService(db).recompute_all_parents()
    finally:
        db.close()


def main(argv=None):
    parser = argparse.ArgumentParser(prog="storefront-maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    bulk = sub.add_parser("bulk-normalize", help="normalize every unnormalized product")
    bulk.add_argument("--batch-size", type=int, default=50)
    bulk.add_argument("--max-batches", type=int, default=None)

    sub.add_parser("recalc-parents", help="recompute aggregate stock of every parent")

    args = parser.parse_args(argv)
    init_db()

    if args.command == "bulk-normalize":
        bulk_normalize(args.batch_size, args.max_batches)
    else:
        count = recalc_parents()
        logger.info(f"Recalculated stock for {count} parents")


if __name__ == "__main__":
    main()

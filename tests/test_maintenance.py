"""Tests for the maintenance CLI."""

from storefront.data import maintenance
from storefront.domain.schemas import NormalizeResult
from storefront.repos.product_repo import ProductRepo


def test_recalc_parents(db):
    ProductRepo(db).create_parent("Nike", "Dunk", "sneaker", 10000).stock_quantity = 7
    db.commit()

    maintenance.main(["recalc-parents"])

    db.expire_all()
    parent = ProductRepo(db).find_parent("Nike", "Dunk")
    assert parent.stock_quantity == 0


def test_bulk_normalize_passes_options(monkeypatch):
    seen = {}

    def fake_normalize_all(self, batch_size, max_batches=None):
        seen.update(batch_size=batch_size, max_batches=max_batches)
        return NormalizeResult()

    monkeypatch.setattr(maintenance.NormalizationService, "normalize_all", fake_normalize_all)

    maintenance.main(["bulk-normalize", "--batch-size", "5", "--max-batches", "2"])

    assert seen == {"batch_size": 5, "max_batches": 2}

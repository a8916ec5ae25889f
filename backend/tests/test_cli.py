from rgstore.cli import SAMPLE_PRODUCTS
from rgstore.extensions import db
from rgstore.models import Product, StockMovement


def test_seed_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["catalog", "seed"])
    assert first.exit_code == 0, first.output
    assert f"created={len(SAMPLE_PRODUCTS)}" in first.output

    second = runner.invoke(args=["catalog", "seed"])
    assert second.exit_code == 0
    assert f"created=0 skipped={len(SAMPLE_PRODUCTS)}" in second.output

    assert db.session.query(Product).count() == len(SAMPLE_PRODUCTS)
    assert db.session.query(StockMovement).count() == len(SAMPLE_PRODUCTS)
    cola = db.session.query(Product).filter_by(sku="BEV-001").one()
    assert cola.stock == 50
    assert str(cola.price) == "85.00"


def test_reconcile_exit_codes(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["catalog", "seed"])

    clean = runner.invoke(args=["ledger", "reconcile"])
    assert clean.exit_code == 0
    assert "0 drifted" in clean.output

    soap = db.session.query(Product).filter_by(sku="SOA-001").one()
    db.session.execute(
        Product.__table__.update().where(Product.__table__.c.id == soap.id).values(stock=7)
    )
    db.session.commit()

    drift = runner.invoke(args=["ledger", "reconcile"])
    assert drift.exit_code == 1
    assert "DRIFT SOA-001" in drift.output


def test_reset_db_requires_confirmation(app, db_session):
    runner = app.test_cli_runner()
    runner.invoke(args=["catalog", "seed"])

    refused = runner.invoke(args=["system", "reset-db"])
    assert refused.exit_code == 1
    assert db.session.query(Product).count() == len(SAMPLE_PRODUCTS)

    done = runner.invoke(args=["system", "reset-db", "--yes"])
    assert done.exit_code == 0
    assert db.session.query(Product).count() == 0

    assert runner.invoke(args=["system", "init"]).exit_code == 0

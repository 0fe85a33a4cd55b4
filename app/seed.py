"""Reset & Seed — sample catalog, parties and quotations for local work.

Wipes quotations, follow-ups, parties and the catalog, then loads a small
PC-components catalog, three parties (P0001-P0003) and two quotations
(quote-P0001, quote-P0002).

Usage:
    python -m app.seed              # reset + seed
    python -m app.seed --reset-only # just wipe
    python -m app.seed --force      # allow outside development
"""

import argparse
import logging
import sys

from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal, engine
from app.models import Base, Brand, Category, FollowUp, Party, ProductModel, Quotation
from app.services.lineage_service import create_quotation
from app.services.sequence_service import create_party

log = logging.getLogger("quotedesk.seed")

CATEGORIES = [
    "Processor", "Memory", "Storage", "Graphics Card", "Motherboard",
    "Power Supply", "Cabinet", "Monitor", "Keyboard", "Mouse",
]

BRANDS = ["Intel", "AMD", "Corsair", "Samsung", "NVIDIA", "ASUS", "MSI", "Antec", "LG", "Logitech"]

# (name, category, brand, hsn, warranty, purchase, sales)
MODELS = [
    ("Core i5-12400F", "Processor", "Intel", "8471", "3 Years", 12000, 15000),
    ("Ryzen 5 5600X", "Processor", "AMD", "8471", "3 Years", 15000, 18000),
    ("Vengeance LPX 16GB DDR4", "Memory", "Corsair", "8473", "Lifetime", 4500, 6000),
    ("980 EVO 1TB NVMe SSD", "Storage", "Samsung", "8471", "5 Years", 8000, 10000),
    ("RTX 4060 Ti", "Graphics Card", "NVIDIA", "8471", "3 Years", 35000, 42000),
]

PARTIES = [
    {
        "name": "John Doe",
        "phone": "+91-9876543210",
        "email": "john.doe@email.com",
        "address": "123 Main Street, Mumbai, Maharashtra 400001",
    },
    {
        "name": "Jane Smith",
        "phone": "+91-9876543211",
        "email": "jane.smith@email.com",
        "address": "456 Park Avenue, Delhi, Delhi 110001",
    },
    {
        "name": "Raj Patel",
        "phone": "+91-9876543212",
        "email": "raj.patel@email.com",
        "address": "789 Garden Road, Bangalore, Karnataka 560001",
    },
]

# (party index, model names, notes, terms, status)
QUOTATIONS = [
    (
        0,
        ["Core i5-12400F", "Vengeance LPX 16GB DDR4"],
        "Basic gaming setup for client",
        "Payment terms: 100% advance\nDelivery: Within 7 working days\nWarranty: As per manufacturer",
        "sent",
    ),
    (
        1,
        ["Ryzen 5 5600X", "RTX 4060 Ti"],
        "High-end gaming setup",
        "Payment terms: 50% advance, 50% on delivery\nDelivery: Within 10 working days\n"
        "Warranty: As per manufacturer",
        "draft",
    ),
]


def reset_database(db: Session) -> dict:
    """Delete every row the app owns. Next party will be P0001."""
    removed = {
        "quotations": db.query(Quotation).delete(synchronize_session=False),
        "follow_ups": db.query(FollowUp).delete(synchronize_session=False),
        "parties": db.query(Party).delete(synchronize_session=False),
        "models": db.query(ProductModel).delete(synchronize_session=False),
        "brands": db.query(Brand).delete(synchronize_session=False),
        "categories": db.query(Category).delete(synchronize_session=False),
    }
    db.commit()
    log.info("Database cleared: %s", removed)
    return removed


def seed_database(db: Session) -> dict:
    categories = {name: Category(name=name) for name in CATEGORIES}
    brands = {name: Brand(name=name) for name in BRANDS}
    db.add_all([*categories.values(), *brands.values()])
    db.flush()

    models = {}
    for name, category, brand, hsn, warranty, purchase, sales in MODELS:
        models[name] = ProductModel(
            name=name,
            category_id=categories[category].id,
            brand_id=brands[brand].id,
            hsn=hsn,
            warranty=warranty,
            purchase_price=purchase,
            sales_price=sales,
            gst_rate=settings.default_gst_rate,
        )
    db.add_all(models.values())
    db.commit()

    parties = []
    for fields in PARTIES:
        party = create_party(db, **fields)
        parties.append(party)
        log.info("Created party %s — %s", party.party_id, party.name)

    quotations = []
    for party_index, model_names, notes, terms, status in QUOTATIONS:
        items = []
        for name in model_names:
            m = models[name]
            items.append(
                {
                    "category": m.category_id,
                    "brand": m.brand_id,
                    "model": m.id,
                    "quantity": 1,
                    "purchase_price": float(m.purchase_price),
                    "sales_price": float(m.sales_price),
                    "gst_rate": float(m.gst_rate),
                }
            )
        quotation = create_quotation(
            db,
            parties[party_index].id,
            items,
            notes=notes,
            terms_and_conditions=terms,
            status=status,
        )
        quotations.append(quotation)
        log.info("Created quotation %s", quotation.title)

    return {
        "categories": len(categories),
        "brands": len(brands),
        "models": len(models),
        "parties": [p.party_id for p in parties],
        "quotations": [q.title for q in quotations],
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="QuoteDesk reset and seed")
    parser.add_argument("--reset-only", action="store_true", help="Wipe data without seeding")
    parser.add_argument("--force", action="store_true", help="Allow outside development")
    args = parser.parse_args(argv)

    from app.logging_config import setup_logging

    setup_logging()

    if not settings.is_development and not args.force:
        log.error("Refusing to reset a %s database without --force", settings.app_env)
        return 2

    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        reset_database(db)
        if not args.reset_only:
            summary = seed_database(db)
            log.info("Seed complete: %s", summary)
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())

# storefront/populate_db.py
"""Seed a superoperator and a handful of products. Usage: python -m storefront.populate_db"""
import logging
import os

from dotenv import load_dotenv

from storefront.config import Settings
from storefront.database import Database
from storefront.models.product import Product
from storefront.models.users import Role
from storefront.services import auth_service

logger = logging.getLogger(__name__)

SAMPLE_PRODUCTS = [
    # name, description, price_cents, category, stock
    ("Turmeric Powder", "Rich in color and flavor", 599, "Spices", 100),
    ("Cumin Seeds", "Warm, earthy aroma", 449, "Spices", 80),
    ("Cardamom Pods", "Green cardamom, whole", 1299, "Spices", 40),
    ("Peppermint Leaves", "Organic leaves for infusions", 699, "Tea & Infusions", 60),
    ("Saffron Threads", "Grade A, 1g", 2499, "Spices", 10),
]


def seed(database: Database):
    admin_email = os.getenv("SEED_ADMIN_EMAIL", "admin@storefront.local")
    admin_password = os.getenv("SEED_ADMIN_PASSWORD", "admin12345")

    with database.session() as db:
        if auth_service.get_by_email(db, admin_email) is None:
            auth_service.create_principal(db, admin_email, admin_password, "Admin User", Role.SUPEROPERATOR.value)
            logger.info("Created superoperator %s", admin_email)
        else:
            logger.info("Superoperator %s already exists", admin_email)

        if db.query(Product).count() == 0:
            db.add_all([
                Product(name=name, description=desc, price_cents=price, category=category, stock_count=stock)
                for name, desc, price, category, stock in SAMPLE_PRODUCTS
            ])
            db.commit()
            logger.info("Inserted %s sample products", len(SAMPLE_PRODUCTS))


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    database = Database.from_settings(Settings())
    database.init_db()
    seed(database)

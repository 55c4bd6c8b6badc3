# storefront/seed.py
"""Populate the database with an admin account and a demo catalog.

Usage: python -m storefront.seed
"""
import os

from storefront.database import SessionLocal, init_db
from storefront.models.product import Product, ProductCategory, ProductVariant
from storefront.models.users import User
from storefront.utils.hashing import get_password_hash

# Configuration
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin123!")

def _sizes(prefix, price, stocks, xxl_price):
    options = []
    for size, stock in stocks.items():
        options.append(ProductVariant(
            name="Size", value=size, price=xxl_price if size == "XXL" else price,
            stock=stock, sku=f"{prefix}-{size}",
        ))
    return options

PRODUCTS = [
    dict(name="Complete Financial Freedom Course", slug="complete-financial-freedom-course",
         description="Master the fundamentals of personal finance, investing and wealth building.",
         price=297, compare_price=397, category=ProductCategory.COURSE,
         subcategory="financial-education", is_featured=True),
    dict(name="Advanced Trading Masterclass", slug="advanced-trading-masterclass",
         description="Advanced strategies, risk management and market analysis techniques.",
         price=497, compare_price=697, category=ProductCategory.COURSE, subcategory="trading",
         is_featured=True),
    dict(name="Premium Hoodie", slug="premium-hoodie",
         description="Heavyweight cotton hoodie with embroidered logo.",
         price=79, category=ProductCategory.MERCH, subcategory="apparel", stock=100, sku="HOODIE-001"),
    dict(name="Financial Freedom Ebook", slug="financial-freedom-ebook",
         description="A practical guide to budgeting, saving and investing.",
         price=29, category=ProductCategory.EBOOK, subcategory="guides"),
    dict(name="One-on-One Financial Consultation", slug="one-on-one-financial-consultation",
         description="A 60 minute session with a financial coach.",
         price=199, category=ProductCategory.CONSULTATION, subcategory="personal"),
    dict(name="Classic T-Shirt", slug="classic-t-shirt",
         description="Soft cotton tee with printed logo.",
         price=29, category=ProductCategory.MERCH, subcategory="apparel", stock=150, sku="TSHIRT-001"),
]

VARIANTS = {
    "premium-hoodie": lambda: _sizes("HOODIE-001", 79, {"S": 20, "M": 30, "L": 25, "XL": 20, "XXL": 5}, 84),
    "classic-t-shirt": lambda: _sizes("TSHIRT-001", 29, {"S": 25, "M": 40, "L": 35, "XL": 30, "XXL": 20}, 32),
}

def seed():
    init_db()
    session = SessionLocal()
    try:
        if session.query(Product).count():
            print("Catalog already populated, skipping")
            return

        admin = session.query(User).filter(User.email == ADMIN_EMAIL.lower()).first()
        if not admin:
            admin = User(name="Admin User", email=ADMIN_EMAIL.lower(),
                         password_hash=get_password_hash(ADMIN_PASSWORD), role="admin")
            session.add(admin)
            session.flush()

        for data in PRODUCTS:
            product = Product(**data, created_by=admin.id)
            product.variants = VARIANTS.get(data["slug"], list)()
            session.add(product)

        session.commit()
        print(f"Seeded {len(PRODUCTS)} products and admin {admin.email}")
    finally:
        session.close()

if __name__ == "__main__":
    seed()

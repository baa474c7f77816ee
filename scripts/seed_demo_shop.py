#!/usr/bin/env python3
"""
Demo Shop Seeder

Creates an owner account, a shop with its default roles, a supplier,
a handful of products and a month of randomised sales, so the AI
insights endpoints have something to work with.

Usage:
    python scripts/seed_demo_shop.py
    python scripts/seed_demo_shop.py --email demo@example.com --days 45
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
import random
from datetime import datetime, timedelta

from shopdesk.models.base import init_db, session_scope
from shopdesk.models.product import Product, Supplier
from shopdesk.models.sale import Sale, SaleItem
from shopdesk.models.user import User
from shopdesk.services import auth_service
from shopdesk.utils.logger import log


PRODUCTS = [
    # name, price, stock, typical daily units
    ("Rice 5kg", 8500.0, 40, 2.0),
    ("Beans 1kg", 1800.0, 25, 1.5),
    ("Palm Oil 1L", 2200.0, 6, 1.0),
    ("Sugar 500g", 900.0, 60, 0.5),
    ("Tomato Paste", 450.0, 12, 3.0),
]


def seed(email: str, password: str, days: int, seed_value: int):
    rng = random.Random(seed_value)
    init_db()
    with session_scope() as db:
        if db.query(User).filter(User.email == email).first():
            log.warning(f"{email} already exists, nothing to do")
            return None

        user, shop = auth_service.signup(db, email, password, "Demo Owner", "Demo Shop")

        supplier = Supplier(shop_id=shop.id, name="Lagos Wholesale", phone="+234 800 000 0000")
        db.add(supplier)
        db.flush()

        products = []
        for name, price, stock, _ in PRODUCTS:
            p = Product(shop_id=shop.id, supplier_id=supplier.id, name=name, price=price, stock=stock)
            db.add(p)
            products.append(p)
        db.flush()

        now = datetime.utcnow()
        count = 0
        for day in range(days, -1, -1):
            for product, (_, price, _, daily) in zip(products, PRODUCTS):
                qty = rng.randint(0, int(daily * 2))
                if qty == 0:
                    continue
                count += 1
                sale = Sale(
                    shop_id=shop.id,
                    staff_id=user.id,
                    order_id=f"DEMO-{shop.id[:8]}-{count:05d}",
                    total_amount=price * qty,
                    created_at=now - timedelta(days=day, minutes=rng.randint(0, 600)),
                )
                sale.items.append(SaleItem(product_id=product.id, quantity=qty, price=price))
                db.add(sale)
        db.commit()

        log.info(f"Seeded shop {shop.id} for {email}: {len(products)} products, {count} sales")
        return shop.id


def main():
    parser = argparse.ArgumentParser(description="Seed a demo shop with sales history")
    parser.add_argument("--email", default="demo@example.com")
    parser.add_argument("--password", default="demo-password")
    parser.add_argument("--days", type=int, default=30)
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducible data")
    args = parser.parse_args()

    shop_id = seed(args.email, args.password, args.days, args.seed)
    if shop_id:
        print(f"Shop id: {shop_id}  (send as X-Shop-Id)")


if __name__ == "__main__":
    main()

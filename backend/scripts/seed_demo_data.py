#!/usr/bin/env python3
"""
ShopFloor MRP - Demo Data Seeder

Creates a small, self-consistent shop floor to click through:
- An admin and two operator profiles
- Raw materials with opening stock (posted to the stock ledger)
- A Chair finished good with its BOM
- One manufacturing order fanned out to work orders

Usage:
  cd backend
  python scripts/seed_demo_data.py

Safe to re-run: anything that already exists is left alone.
"""
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.db.session import SessionLocal
from app.core.security import create_access_token
from app.models import Product, UserProfile, ManufacturingOrder
from app.services import catalog
from app.services.order_workflow import OrderWorkflowService

PROFILES = [
    {"id": 1, "email": "admin@shopfloor.local", "full_name": "Demo Admin", "role": "admin"},
    {"id": 2, "email": "ola@shopfloor.local", "full_name": "Ola Operator", "role": "operator"},
    {"id": 3, "email": "sam@shopfloor.local", "full_name": "Sam Sander", "role": "operator"},
]

RAW_MATERIALS = [
    # name, opening stock, min stock level
    ("Legs", 200, 40),
    ("Seat", 40, 10),
    ("Backrest", 30, 10),
    ("Screws", 500, 100),
]

CHAIR_BOM = [("Legs", 4), ("Seat", 1), ("Backrest", 1), ("Screws", 8)]


def seed_profiles(db):
    for data in PROFILES:
        if db.get(UserProfile, data["id"]):
            print(f"   • {data['full_name']} already exists")
            continue
        db.add(UserProfile(**data))
        print(f"   ✅ {data['full_name']} ({data['role']})")
    db.commit()


def seed_products(db, admin_id):
    products = {}
    for name, opening, minimum in RAW_MATERIALS:
        product = db.query(Product).filter(Product.name == name).first()
        if not product:
            product = catalog.create_product(
                db,
                name=name,
                product_type="raw_material",
                min_stock_level=minimum,
                opening_stock=opening,
                created_by=admin_id,
            )
            print(f"   ✅ {name}: {opening} on hand")
        products[name] = product

    chair = db.query(Product).filter(Product.name == "Chair").first()
    if not chair:
        chair = catalog.create_product(db, name="Chair", product_type="finished_good", created_by=admin_id)
        print("   ✅ Chair (finished good)")
    products["Chair"] = chair
    return products


def seed_bom(db, products, admin_id):
    existing = catalog.list_boms(db, product_id=products["Chair"].id, active=True)
    if existing:
        print(f"   • Chair BOM {existing[0].id} already exists")
        return existing[0]
    bom = catalog.create_bom(
        db,
        product_id=products["Chair"].id,
        lines=[
            {"component_product_id": products[name].id, "quantity": quantity}
            for name, quantity in CHAIR_BOM
        ],
        name="Standard chair",
        created_by=admin_id,
    )
    print(f"   ✅ Chair BOM {bom.id} with {len(bom.lines)} lines")
    return bom


def seed_order(db, products, admin_id, operator_id):
    if db.query(ManufacturingOrder).count():
        print("   • Manufacturing orders already exist")
        return
    created = OrderWorkflowService(db).create_manufacturing_order(
        products["Chair"].id,
        5,
        operator_id,
        notes="Demo order",
        created_by=admin_id,
    )
    print(f"   ✅ MO-{created.mo_id} for 5 chairs, {created.work_orders_created} work orders")


def create_demo_data():
    """Create the demo shop floor"""
    db = SessionLocal()

    try:
        print("🌱 Creating ShopFloor demo data...")
        print("=" * 50)

        print("\n👤 Profiles...")
        seed_profiles(db)
        admin_id, operator_id = PROFILES[0]["id"], PROFILES[1]["id"]

        print("\n📦 Products...")
        products = seed_products(db, admin_id)

        print("\n📋 Bill of materials...")
        seed_bom(db, products, admin_id)

        print("\n🏭 Manufacturing orders...")
        seed_order(db, products, admin_id, operator_id)

        print("\n" + "=" * 50)
        print("🎉 DEMO DATA READY")
        print("=" * 50)
        print("\n🔑 Bearer tokens (development only):")
        for profile in PROFILES:
            print(f"   • {profile['full_name']}: {create_access_token(profile['id'])}")

    except Exception as e:
        print(f"\n❌ Error creating demo data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    create_demo_data()

# scripts/setup/init_db.py
"""
Initialize database: creates all tables and the admission lock row.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py [--seed]
"""

import argparse
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from sqlalchemy import inspect

from bzpark.config import settings
from bzpark.database import SessionLocal, check_connection, create_tables, engine
from bzpark.models.service import Service

DEFAULT_SERVICES = [
    # vehicle_type, first_2_hrs, per_succ_hr
    ("car", 50, 20),
    ("motorcycle", 30, 10),
]


def seed_services():
    db = SessionLocal()
    try:
        for vehicle_type, first_2_hrs, per_succ_hr in DEFAULT_SERVICES:
            if db.query(Service).filter(Service.vehicle_type == vehicle_type).first():
                print(f"   = {vehicle_type} already present")
                continue
            db.add(Service(vehicle_type=vehicle_type, first_2_hrs=first_2_hrs, per_succ_hr=per_succ_hr))
            print(f"   + {vehicle_type}: {first_2_hrs} first 2h, {per_succ_hr}/h after")
        db.commit()
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Create BZpark tables")
    parser.add_argument("--seed", action="store_true", help="Insert default pricing services")
    args = parser.parse_args()

    print("🗄️  BZpark DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    try:
        check_connection()
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  sudo systemctl start postgresql")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    print("✅ All tables created")

    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    if args.seed:
        print("\n🌱 Seeding services...")
        seed_services()

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn bzpark.main:app --host {settings.BACKEND_IP} --port {settings.BACKEND_PORT}")


if __name__ == "__main__":
    main()

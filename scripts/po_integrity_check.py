import asyncio
import os
import sys
import uuid

sys.path.append(os.getcwd())

from pharmacy_api.database import AsyncSessionLocal
from pharmacy_api.services.integrity_service import find_inconsistencies


async def main(pharmacy_id=None):
    async with AsyncSessionLocal() as db:
        print("Starting Purchase Order Integrity Check...")
        print("=" * 60)

        found = await find_inconsistencies(db, pharmacy_id)
        if found:
            print(f"❌ Found {len(found)} inconsistencies:")
            for item in found:
                print(f"   - {item.order_number} [{item.code}] {item.message}")
        else:
            print("✅ Stored statuses and totals agree with their lines.")

        print("\n" + "=" * 60)
        print("Integrity Check Complete.")
        return 1 if found else 0


if __name__ == "__main__":
    scope = uuid.UUID(sys.argv[1]) if len(sys.argv) > 1 else None
    sys.exit(asyncio.run(main(scope)))

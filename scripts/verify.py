"""
Excel Verification Script

Verifies data integrity of the Excel export file.
Run from project root: python scripts/verify.py
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from smartmenu.models import OrderStatus
from smartmenu.services.excel_manager import ExcelManager


def verify_excel() -> bool:
    """Verify Excel file integrity after simulation."""
    orders_file, _ = ExcelManager._paths()

    print("=" * 60)
    print("🔍 EXCEL VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {orders_file}")
    print("=" * 60)

    if not orders_file.exists():
        print("\n❌ Excel file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    df = ExcelManager._load_or_create_df(orders_file)
    print("\n✅ File loaded successfully!")

    print("\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    ok = True

    duplicates = df['order_id'].duplicated().sum()
    if duplicates > 0:
        print(f"\n⚠️ {duplicates} duplicate order IDs found!")
        ok = False
    else:
        print("✅ No duplicate order IDs")

    known = {status.value for status in OrderStatus}
    unknown = df[~df['order_status'].isin(known)]
    if len(unknown) > 0:
        print(f"⚠️ {len(unknown)} rows with unknown status: {sorted(unknown['order_status'].astype(str).unique())}")
        ok = False
    else:
        counts = df['order_status'].value_counts().to_dict()
        print(f"✅ Statuses: {counts}")

    if len(df) > 0:
        print("\n💰 REVENUE:")
        print(f"   Total: {int(df['total'].sum())} ₸")
        print(f"   Average: {df['total'].mean():.0f} ₸")

        print("\n📋 RECENT ORDERS:")
        print("-" * 60)
        print(df[['order_id', 'table', 'total', 'order_status']].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND ISSUES")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_excel() else 1)

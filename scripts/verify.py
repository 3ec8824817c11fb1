"""
Excel Verification Script

Verifies data integrity of the Excel order export.
Run from project root: python scripts/verify.py

Author: Khalil Bannouri
Version: 4.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from app.core.config import get_settings

settings = get_settings()
EXCEL_FILE = os.path.join(settings.data_directory, settings.excel_filename)

REQUIRED_COLUMNS = ['order_id', 'user_phone', 'kitchen_name', 'total', 'order_status']


def verify_excel() -> bool:
    """Verify Excel file integrity after a simulation run."""

    print("=" * 60)
    print("🔍 EXCEL VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {EXCEL_FILE}")
    print("=" * 60)

    if not os.path.exists(EXCEL_FILE):
        print("\n❌ Excel file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    try:
        df = pd.read_excel(EXCEL_FILE, engine='openpyxl')
        print(f"\n✅ File loaded successfully!")
    except (OSError, ValueError) as e:
        print(f"\n❌ Could not read Excel file: {e}")
        return False

    print(f"\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
    else:
        print(f"\n✅ All required columns present")

    ok = not missing

    if 'order_id' in df.columns:
        duplicates = df['order_id'].duplicated().sum()
        if duplicates > 0:
            print(f"\n⚠️ {duplicates} duplicate order IDs found!")
            ok = False
        else:
            print(f"✅ No duplicate order IDs")

    if 'total' in df.columns:
        totals = pd.to_numeric(df['total'], errors='coerce')
        print(f"\n💰 REVENUE ({settings.currency}):")
        print(f"   Total: {totals.sum():.2f}")
        print(f"   Average: {totals.mean():.2f}")

    if 'order_status' in df.columns:
        print(f"\n📦 BY STATUS:")
        for status, count in df['order_status'].value_counts().items():
            print(f"   {status}: {count}")

    print(f"\n📋 RECENT ORDERS:")
    print("-" * 60)
    if len(df) > 0:
        cols = [c for c in ['order_id', 'user_phone', 'order_mode', 'total', 'order_status'] if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND ISSUES")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_excel() else 1)

"""
reset_data.py
-------------
Utility script to clear all stored data (fleet, crew, bookings, holidays)
from the local data.pkl file.

Usage:
    $ python reset_data.py

After running this script, you can repopulate sample data by executing:
    $ python seeds.py
"""

from fleetplanner.models.store import COLLECTION_NAMES, Store


def reset(store: Store) -> None:
    """Empty every collection and persist the empty store."""
    with store.transaction():
        for name in COLLECTION_NAMES:
            getattr(store, name).clear()


def main():
    store = Store.instance()
    reset(store)

    print("✅ data.pkl has been successfully cleared.")
    print("💡 Tip: Run `python seeds.py` to regenerate demo data.")


if __name__ == "__main__":
    main()

"""
track_parcel.py - Track a simulated local courier parcel through the cache
"""

import asyncio
import logging

from parceltrack import ParcelTrack


async def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(name)s - %(message)s")

    app = ParcelTrack({
        "local": {"latency_seconds": 0.2, "failure_rate": 0, "seed": 7},
        "scheduler": {"enabled": False},
    })
    await app.initialize()

    try:
        for tracking_number in ("LOC1001", "LOC1002DEL", "LOC1001"):
            shipment = await app.service.get_shipment(tracking_number)
            print(f"{shipment.tracking_number}: {shipment.status.value} @ {shipment.current_location}")

        stats = await app.service.get_cache_stats()
        print(f"Cached: {stats.to_dict()}")

        result = await app.scheduler.run_now()
        print(f"Refresh run: {result.to_dict()}")
    finally:
        await app.shutdown()


if __name__ == "__main__":
    asyncio.run(main())

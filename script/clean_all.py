#!/usr/bin/env python
"""
Kvrocks Cleanup Script
Delete every seating record and index key under the configured key prefix

Other keys in the same Kvrocks database are left alone.
"""

import asyncio

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.platform.state.kvrocks_client import kvrocks_client

SCAN_BATCH_SIZE = 500


async def clean() -> int:
    client = await kvrocks_client.initialize()
    pattern = f'{settings.KVROCKS_KEY_PREFIX}seating:*'
    deleted = 0
    batch: list[str] = []

    try:
        async for key in client.scan_iter(match=pattern, count=SCAN_BATCH_SIZE):
            batch.append(key)
            if len(batch) >= SCAN_BATCH_SIZE:
                deleted += await client.delete(*batch)
                batch.clear()
        if batch:
            deleted += await client.delete(*batch)
    finally:
        await kvrocks_client.disconnect()
    return deleted


def main() -> None:
    Logger.base.info(f'🧹 Cleaning {settings.KVROCKS_KEY_PREFIX}seating:* keys...')
    deleted = asyncio.run(clean())
    Logger.base.info(f'✅ Deleted {deleted} keys')


if __name__ == '__main__':
    main()

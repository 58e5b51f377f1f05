"""
Пример run-sequence на asyncio.

Две загрузки выполняются параллельно, обработка ждет обе.
"""

from __future__ import annotations

import asyncio

from run_sequence.adapters.asyncio_host import AsyncioTaskHost, run_async


async def main() -> None:
    host = AsyncioTaskHost()

    @host.task("fetch_users")
    async def fetch_users() -> None:
        await asyncio.sleep(0.2)
        print("users fetched")

    @host.task("fetch_orders")
    async def fetch_orders() -> None:
        await asyncio.sleep(0.1)
        print("orders fetched")

    @host.task("report")
    async def report() -> None:
        print("report built")

    result = await run_async(host, ["fetch_users", "fetch_orders"], "report")
    print(f"Статус: {result.status.value}, задачи: {result.completed_tasks}")


if __name__ == "__main__":
    asyncio.run(main())

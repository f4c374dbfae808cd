import asyncio

import pytest

from src.pm_common.locks import MarketLockRegistry, get_lock_registry


class TestMarketLockRegistry:
    async def test_entry_removed_after_release(self) -> None:
        registry = MarketLockRegistry()
        async with registry.hold("a"):
            assert len(registry) == 1
        assert len(registry) == 0

    async def test_entry_removed_when_body_raises(self) -> None:
        registry = MarketLockRegistry()
        with pytest.raises(RuntimeError):
            async with registry.hold("a"):
                raise RuntimeError("boom")
        assert len(registry) == 0

    async def test_markets_do_not_block_each_other(self) -> None:
        registry = MarketLockRegistry()
        async with registry.hold("a"):
            async with registry.hold("b"):
                assert len(registry) == 2

    async def test_serialises_critical_sections(self) -> None:
        registry = MarketLockRegistry()
        trace: list[str] = []

        async def work(name: str) -> None:
            async with registry.hold("m"):
                trace.append(f"{name}-in")
                await asyncio.sleep(0)
                trace.append(f"{name}-out")

        await asyncio.gather(work("a"), work("b"), work("c"))
        assert trace == ["a-in", "a-out", "b-in", "b-out", "c-in", "c-out"]
        assert len(registry) == 0

    async def test_waiter_keeps_entry_alive_after_release(self) -> None:
        registry = MarketLockRegistry()
        entered = asyncio.Event()
        release = asyncio.Event()
        trace: list[str] = []

        async def first() -> None:
            async with registry.hold("m"):
                entered.set()
                await release.wait()
                trace.append("first")

        async def second() -> None:
            await entered.wait()
            async with registry.hold("m"):
                trace.append("second")

        tasks = [asyncio.create_task(first()), asyncio.create_task(second())]
        await entered.wait()
        await asyncio.sleep(0)
        release.set()
        await asyncio.gather(*tasks)

        assert trace == ["first", "second"]
        assert len(registry) == 0

    async def test_cancelled_waiter_releases_entry(self) -> None:
        registry = MarketLockRegistry()
        async with registry.hold("m"):
            waiter = asyncio.create_task(registry.hold("m").__aenter__())
            await asyncio.sleep(0)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter
        assert len(registry) == 0

    def test_process_singleton(self) -> None:
        assert get_lock_registry() is get_lock_registry()

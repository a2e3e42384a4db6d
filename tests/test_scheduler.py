import random

import pytest
from web3 import Web3

from core.errors import TransportError
from core.models import FleetConfig, OutcomeStatus, SwapOutcome
from core.scheduler import FleetScheduler, WalletCycleScheduler
from core.wallet_manager import WalletManager
from services.swap_executor import SwapExecutor
from fakes import OPNT, TEST_KEY, TUSDT, DummyConfig, FakeChainClient, no_sleep


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class FakeWalletManager(WalletManager):
    """WalletManager без сети: connect отдает заранее созданные клиенты"""

    def __init__(self, config, clients):
        super().__init__(config)
        self.clients = clients
        self.connected_proxies = []

    def connect(self, wallet, proxy=None):
        self.connected_proxies.append(proxy)
        return self.clients[len(self.connected_proxies) - 1]


def make_scheduler(config, clients, sleep=no_sleep):
    manager = FakeWalletManager(config, clients)
    return WalletCycleScheduler(config, manager, sleep=sleep), manager


@pytest.mark.asyncio
async def test_single_forward_then_single_reverse():
    config = DummyConfig(swap_pairs=[OPNT])
    client = FakeChainClient(native_balance=Web3.to_wei(1, "ether"), amounts_out=[10 ** 18],
                             allowance=2 ** 256 - 1)

    # после forward свапа на кошельке появляется токен
    original_send = client.send_raw_transaction

    async def send_and_credit(raw):
        client.token_balances[OPNT.output] = 10 ** 18
        return await original_send(raw)

    client.send_raw_transaction = send_and_credit

    scheduler, manager = make_scheduler(config, [client])
    wallet = manager.load_wallets([TEST_KEY])[0]

    report = await scheduler.run(wallet, client, swap_count=1)

    assert report.forward_success == 1
    assert report.forward_failed == 0
    assert report.reverse_attempted == 1
    assert report.reverse_success == 1
    assert report.final_native_balance == Web3.to_wei(1, "ether")
    assert len(client.sent) == 2


@pytest.mark.asyncio
async def test_delays_between_operations_but_not_after_last_reverse():
    config = DummyConfig(swap_pairs=[OPNT, TUSDT])
    client = FakeChainClient(amounts_out=[10 ** 18], allowance=2 ** 256 - 1,
                             token_balances={OPNT.output: 10 ** 18, TUSDT.output: 10 ** 18})
    sleep = RecordingSleep()
    scheduler, manager = make_scheduler(config, [client], sleep=sleep)
    wallet = manager.load_wallets([TEST_KEY])[0]

    class RecordingExecutor:
        dust_threshold = staticmethod(SwapExecutor.dust_threshold)

        def __init__(self):
            self.forward_pairs = []
            self.reversed = []

        async def forward_swap(self, ctx, pair, num, total):
            self.forward_pairs.append(pair)
            return SwapOutcome.success("0x1", 1, 1, 1)

        async def reverse_swap(self, ctx, pair, balance):
            self.reversed.append(pair)
            return SwapOutcome.success("0x2", 1, 1, 1)

    executors = []

    def factory(_client):
        executor = RecordingExecutor()
        executors.append(executor)
        return executor

    scheduler.executor_factory = factory
    report = await scheduler.run(wallet, client, swap_count=4)

    executor = executors[0]
    touched = {pair.output for pair in executor.forward_pairs}
    assert {pair.output for pair in executor.reversed} == touched
    assert report.reverse_attempted == len(touched)

    # 4 после forward + (touched - 1) между reverse
    assert len(sleep.calls) == 4 + (len(touched) - 1) + 1
    assert sleep.calls[-1] == config.settle_delay_seconds
    assert all(5 <= s <= 30 for s in sleep.calls[:-1])


@pytest.mark.asyncio
async def test_reverse_only_for_touched_tokens(monkeypatch):
    # на кошельке есть и OPNT, и TUSDT, но forward затрагивает только OPNT
    monkeypatch.setattr(random, "choice", lambda items: OPNT)
    config = DummyConfig(swap_pairs=[OPNT, TUSDT])
    client = FakeChainClient(amounts_out=[10 ** 18], allowance=2 ** 256 - 1,
                             token_balances={OPNT.output: 10 ** 18, TUSDT.output: 10 ** 18})
    scheduler, manager = make_scheduler(config, [client])
    wallet = manager.load_wallets([TEST_KEY])[0]

    report = await scheduler.run(wallet, client, swap_count=2)

    assert report.forward_success == 2
    assert report.reverse_attempted == 1
    assert report.reverse_success == 1
    assert len(client.sent) == 3

    tusdt = TUSDT.output.lower()
    assert all(tusdt not in [token.lower() for token in path] for _amount, path in client.quotes_requested)
    assert [path[0].lower() for _amount, path in client.quotes_requested][-1] == OPNT.output.lower()
    tusdt_bytes = bytes.fromhex(tusdt[2:])
    assert all(tusdt_bytes not in bytes(raw) for raw in client.sent)


@pytest.mark.asyncio
async def test_reverse_skips_token_without_fresh_balance():
    config = DummyConfig(swap_pairs=[OPNT])
    client = FakeChainClient(amounts_out=[10 ** 18], token_balances={})
    scheduler, manager = make_scheduler(config, [client])
    wallet = manager.load_wallets([TEST_KEY])[0]

    report = await scheduler.run(wallet, client, swap_count=1)

    assert report.forward_success == 1
    assert report.reverse_attempted == 0
    assert len(client.sent) == 1


@pytest.mark.asyncio
async def test_wallet_without_funds_is_skipped():
    config = DummyConfig()
    client = FakeChainClient(native_balance=Web3.to_wei(0.0001, "ether"))
    scheduler, manager = make_scheduler(config, [client])
    wallet = manager.load_wallets([TEST_KEY])[0]

    report = await scheduler.run(wallet, client, swap_count=3)

    assert report.skipped
    assert client.sent == []


@pytest.mark.asyncio
async def test_snapshot_failure_skips_wallet():
    config = DummyConfig()
    client = FakeChainClient(native_balance=TransportError("rpc down"))
    scheduler, manager = make_scheduler(config, [client])
    wallet = manager.load_wallets([TEST_KEY])[0]

    report = await scheduler.run(wallet, client, swap_count=3)

    assert report.skipped


@pytest.mark.asyncio
async def test_fleet_rotates_proxies_and_prompts_once():
    config = DummyConfig()
    keys = ["0x" + f"{i:02x}" * 32 for i in (1, 2, 3)]
    clients = [FakeChainClient(native_balance=0) for _ in range(6)]
    manager = FakeWalletManager(config, clients)
    prompts = []

    def prompt():
        prompts.append(1)
        return 2

    sleep = RecordingSleep()
    fleet = FleetScheduler(config, FleetConfig(private_keys=keys, proxies=["p1:80", "p2:80"]), manager,
                           prompt=prompt, sleep=sleep)

    await fleet.run_forever(max_cycles=2)

    assert prompts == [1]
    assert fleet.fleet_config.swap_count == 2
    assert manager.connected_proxies == ["p1:80", "p2:80", "p1:80"] * 2
    # между кошельками 2 задержки на цикл, отдых только между циклами
    wallet_delays = [s for s in sleep.calls if 10 <= s <= 60]
    assert len(wallet_delays) == 4
    assert sleep.calls.count(config.cycle_rest_seconds) == 1


@pytest.mark.asyncio
async def test_fleet_without_proxies_connects_directly():
    config = DummyConfig()
    manager = FakeWalletManager(config, [FakeChainClient(native_balance=0)])
    fleet = FleetScheduler(config, FleetConfig(private_keys=[TEST_KEY], swap_count=1), manager,
                           prompt=lambda: pytest.fail("should not prompt"), sleep=no_sleep)

    reports = await fleet.run_cycle()

    assert manager.connected_proxies == [None]
    assert len(reports) == 1


@pytest.mark.asyncio
async def test_fleet_continues_after_wallet_crash():
    config = DummyConfig()
    manager = FakeWalletManager(config, [FakeChainClient(native_balance=0), FakeChainClient(native_balance=0)])

    class ExplodingCycle:
        def __init__(self):
            self.calls = 0

        async def run(self, wallet, client, swap_count):
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("boom")
            return await WalletCycleScheduler(config, manager, sleep=no_sleep).run(wallet, client, swap_count)

    keys = ["0x" + "01" * 32, "0x" + "02" * 32]
    fleet = FleetScheduler(config, FleetConfig(private_keys=keys, swap_count=1), manager,
                           wallet_cycle=ExplodingCycle(), sleep=no_sleep)

    reports = await fleet.run_cycle()

    assert len(reports) == 2
    assert reports[0].skipped
    assert fleet.cycles_completed == 1


def test_outcome_helpers():
    assert SwapOutcome.success("0x1", 1, 1, 1).ok
    assert SwapOutcome.reverted(1, 2).status is OutcomeStatus.REVERTED

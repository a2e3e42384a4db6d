import asyncio
from typing import Callable, List, Optional

from web3 import Web3

from config.constants import MIN_NATIVE_FOR_FORWARD
from core.errors import ChainError
from core.models import CycleState, FleetConfig, WalletCycleReport
from services.swap_executor import SwapExecutor
from utils.input_utils import prompt_swap_count
from utils.logger import setup_logger, short_address
from utils.randomizer import Randomizer


class WalletCycleScheduler:
    """Полный проход одного кошелька: N forward свапов, затем reverse по затронутым токенам"""

    def __init__(self, config, wallet_manager, executor_factory: Callable = None, sleep=asyncio.sleep):
        self.config = config
        self.wallet_manager = wallet_manager
        self.executor_factory = executor_factory or (lambda client: SwapExecutor(config, client))
        self.sleep = sleep
        self.logger = setup_logger("WalletCycle")

    async def _delay(self, delay_range, reason: str):
        delay = Randomizer.get_random_delay(*delay_range)
        self.logger.info(f"⏳ Waiting {delay:.1f}s {reason}...")
        await self.sleep(delay)

    def _log_snapshot(self, ctx, title: str):
        self.logger.info(
            f"💰 {title} {short_address(ctx.address)}: "
            f"{Web3.from_wei(ctx.native_balance, 'ether'):.6f} {self.config.native_symbol}"
        )
        for token_address, token in ctx.tokens.items():
            pair = self.config.get_swap_pair(token_address)
            symbol = pair.symbol if pair else token_address[:10]
            self.logger.info(f"   {symbol}: {token.balance / 10 ** token.decimals:.6f}")

    async def run(self, wallet, client, swap_count: int) -> WalletCycleReport:
        try:
            ctx = await self.wallet_manager.snapshot(wallet, client)
        except ChainError as e:
            self.logger.error(f"❌ Snapshot failed for {wallet.name}: {e}")
            return WalletCycleReport(address=wallet.address, skipped=True)

        self._log_snapshot(ctx, "Balances")

        if not ctx.has_token_balance() and ctx.native_balance < MIN_NATIVE_FOR_FORWARD:
            self.logger.warning(f"⚠️ {wallet.name} has no funds - skipping")
            return WalletCycleReport(address=wallet.address, final_native_balance=ctx.native_balance, skipped=True)

        executor = self.executor_factory(client)
        state = CycleState()

        # Forward: OPN -> случайный токен, пары выбираются с повторениями
        for num in range(1, swap_count + 1):
            pair = Randomizer.get_random_item(self.config.swap_pairs)
            outcome = await executor.forward_swap(ctx, pair, num, swap_count)
            state.record_forward(outcome)
            state.touched_tokens.add(pair.output)
            await self._delay(self.config.operation_delay_range, "before next operation")

        # Reverse: по одному разу на каждый затронутый токен
        touched = [pair for pair in self.config.swap_pairs if pair.output in state.touched_tokens]
        for index, pair in enumerate(touched):
            try:
                balance = await client.get_token_balance(pair.output, ctx.address)
            except ChainError as e:
                self.logger.error(f"❌ Balance check for {pair.symbol} failed: {e}")
                balance = 0

            if balance > executor.dust_threshold(pair.decimals):
                outcome = await executor.reverse_swap(ctx, pair, balance)
                if outcome is not None:
                    state.reverse_attempted += 1
                    if outcome.ok:
                        state.reverse_success += 1
            else:
                self.logger.warning(f"⚠️ No/low balance for reverse {pair.symbol}")

            if index + 1 < len(touched):
                await self._delay(self.config.operation_delay_range, "before next reverse")

        await self.sleep(self.config.settle_delay_seconds)

        final_native = None
        try:
            final_ctx = await self.wallet_manager.snapshot(wallet, client)
            self._log_snapshot(final_ctx, "Final balances")
            final_native = final_ctx.native_balance
        except ChainError as e:
            self.logger.error(f"❌ Final balance check failed: {e}")

        self.logger.info(
            f"📊 {wallet.name}: forward ✅ {state.forward_success} ❌ {state.forward_failed} | "
            f"reverse ✅ {state.reverse_success}/{state.reverse_attempted}"
        )
        return WalletCycleReport(
            address=wallet.address,
            forward_success=state.forward_success,
            forward_failed=state.forward_failed,
            reverse_success=state.reverse_success,
            reverse_attempted=state.reverse_attempted,
            final_native_balance=final_native,
        )


class FleetScheduler:
    """Последовательный обход кошельков с ротацией прокси и суточным отдыхом"""

    def __init__(self, config, fleet_config: FleetConfig, wallet_manager, wallet_cycle: WalletCycleScheduler = None,
                 prompt: Callable[[], int] = prompt_swap_count, sleep=asyncio.sleep):
        self.config = config
        self.fleet_config = fleet_config
        self.wallet_manager = wallet_manager
        self.wallet_cycle = wallet_cycle or WalletCycleScheduler(config, wallet_manager, sleep=sleep)
        self.prompt = prompt
        self.sleep = sleep
        self.cycles_completed = 0
        self.logger = setup_logger("FleetScheduler")

    async def _resolve_swap_count(self) -> int:
        """Спрашиваем один раз за процесс, если не задано заранее"""
        if self.fleet_config.swap_count is None:
            self.fleet_config.swap_count = await asyncio.to_thread(self.prompt)
            self.logger.info(f"🔢 Forward swaps per wallet: {self.fleet_config.swap_count}")
        return self.fleet_config.swap_count

    async def run_cycle(self) -> List[WalletCycleReport]:
        wallets = self.wallet_manager.load_wallets(self.fleet_config.private_keys)
        reports = []
        self.logger.info(f"🚀 Cycle {self.cycles_completed + 1}: {len(wallets)} wallet(s)")

        for index, wallet in enumerate(wallets):
            proxy = self.fleet_config.proxy_for(index)
            self.logger.info(f"👛 Wallet {index + 1}/{len(wallets)}: {short_address(wallet.address)}")
            try:
                swap_count = await self._resolve_swap_count()
                client = self.wallet_manager.connect(wallet, proxy)
                reports.append(await self.wallet_cycle.run(wallet, client, swap_count))
            except Exception as e:
                # сбой одного кошелька не останавливает обход
                self.logger.exception(f"❌ Wallet {wallet.name} failed: {e}")
                reports.append(WalletCycleReport(address=wallet.address, skipped=True))

            if index + 1 < len(wallets):
                await self._delay_between_wallets()

        self.cycles_completed += 1
        ok = sum(1 for report in reports if not report.skipped)
        self.logger.info(f"🎯 Cycle {self.cycles_completed} done: {ok}/{len(reports)} wallets processed")
        return reports

    async def _delay_between_wallets(self):
        delay = Randomizer.get_random_delay(*self.config.wallet_delay_range)
        self.logger.info(f"⏳ Waiting {delay:.1f}s before next wallet...")
        await self.sleep(delay)

    async def run_forever(self, max_cycles: Optional[int] = None):
        while max_cycles is None or self.cycles_completed < max_cycles:
            await self.run_cycle()
            if max_cycles is not None and self.cycles_completed >= max_cycles:
                break
            rest = self.config.cycle_rest_seconds
            self.logger.info(f"😴 Cycle complete, resting {rest / 3600:.1f}h...")
            await self.sleep(rest)

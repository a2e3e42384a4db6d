from decimal import Decimal
from typing import List, Optional

from web3 import Web3

from config.constants import (
    DUST_THRESHOLD,
    FORWARD_MIN_AMOUNT,
    FORWARD_PERCENT_BASE,
    FORWARD_TOLERANCE,
    MAX_SWAP_ATTEMPTS,
    MIN_NATIVE_FOR_FORWARD,
    REVERSE_PERCENT_BASE,
    REVERSE_TOLERANCE,
)
from core.errors import ApprovalError, ChainError, NonceConflict
from core.gas_policy import GasPolicy
from core.models import (
    Direction,
    FailureReason,
    SwapOutcome,
    SwapPair,
    SwapRequest,
    Sufficiency,
    WalletContext,
)
from services.swap_quoter import SwapQuoter
from services.transaction_builder import TransactionBuilder
from utils.logger import setup_logger
from utils.randomizer import Randomizer


class SwapExecutor:
    """Один свап от котировки до квитанции, с повтором на пониженном слиппедже"""

    def __init__(self, config, client, gas_policy: GasPolicy = None, quoter: SwapQuoter = None,
                 builder: TransactionBuilder = None):
        self.config = config
        self.client = client
        self.gas_policy = gas_policy or GasPolicy(client)
        self.quoter = quoter or SwapQuoter(client, config.router_address)
        self.builder = builder or TransactionBuilder(config)
        self.logger = setup_logger("SwapExecutor")

    # ------------------------------------------------------------------
    # Размеры свапов
    # ------------------------------------------------------------------

    @staticmethod
    def forward_amount(native_balance: int) -> int:
        """0.5-1.5% нативного баланса, но не меньше 0.001 OPN"""
        percent = Randomizer.get_tolerance_percentage(FORWARD_PERCENT_BASE, FORWARD_TOLERANCE)
        amount = int(native_balance * percent)
        return max(amount, FORWARD_MIN_AMOUNT)

    @staticmethod
    def reverse_amount(token_balance: int) -> int:
        """5-15% баланса токена"""
        percent = Randomizer.get_tolerance_percentage(REVERSE_PERCENT_BASE, REVERSE_TOLERANCE)
        return int(token_balance * percent)

    @staticmethod
    def dust_threshold(decimals: int) -> int:
        return int(Decimal(str(DUST_THRESHOLD)) * (10 ** decimals))

    # ------------------------------------------------------------------
    # Публичные операции
    # ------------------------------------------------------------------

    async def forward_swap(self, ctx: WalletContext, pair: SwapPair, num: int = 1, total: int = 1) -> SwapOutcome:
        """OPN -> токен"""
        self.logger.info(f"🔄 Forward {num}/{total}: {self.config.native_symbol} → {pair.symbol}")

        try:
            native_balance = await self.client.get_balance(ctx.address)
        except ChainError as e:
            self.logger.error(f"❌ Balance check failed: {e}")
            return SwapOutcome.failed(e.reason)

        if native_balance < MIN_NATIVE_FOR_FORWARD:
            self.logger.error(f"❌ Low {self.config.native_symbol}: {Web3.from_wei(native_balance, 'ether'):.6f}")
            return SwapOutcome.failed(FailureReason.LOW_BALANCE)

        amount_in = self.forward_amount(native_balance)
        self.logger.info(
            f"🎲 Random amount: {Web3.from_wei(amount_in, 'ether'):.6f} {self.config.native_symbol} "
            f"({amount_in * 100 / native_balance:.1f}% of balance)"
        )

        if self.config.is_wrapped_native(pair.output):
            return await self._single_shot(
                ctx, "Forward (wrap)",
                lambda gas_price, nonce: self.builder.build_wrap(amount_in, gas_price, nonce)
            )

        path = [self.config.wrapped_native_address, pair.output]
        return await self._swap_with_retry(ctx, Direction.FORWARD, amount_in, path, pair.symbol)

    async def reverse_swap(self, ctx: WalletContext, pair: SwapPair, token_balance: int) -> Optional[SwapOutcome]:
        """Токен -> OPN. None, если сумма ниже пыли и делать нечего"""
        self.logger.info(f"🔄 Reverse: {pair.symbol} → {self.config.native_symbol}")

        amount_in = self.reverse_amount(token_balance)
        if amount_in <= self.dust_threshold(pair.decimals):
            self.logger.warning(f"⚠️ No/low balance for reverse {pair.symbol}")
            return None

        self.logger.info(
            f"🎲 Random amount: {amount_in / 10 ** pair.decimals:.8f} {pair.symbol} "
            f"({amount_in * 100 / token_balance:.1f}% of balance)"
        )

        # WOPN не свапаем через роутер, а разворачиваем 1:1
        if self.config.is_wrapped_native(pair.output):
            return await self._single_shot(
                ctx, "Reverse (unwrap)",
                lambda gas_price, nonce: self.builder.build_unwrap(amount_in, gas_price, nonce)
            )

        path = [pair.output, self.config.wrapped_native_address]
        return await self._swap_with_retry(ctx, Direction.REVERSE, amount_in, path, pair.symbol)

    # ------------------------------------------------------------------
    # Машина состояний свапа
    # ------------------------------------------------------------------

    async def _swap_with_retry(self, ctx: WalletContext, direction: Direction, amount_in: int,
                               path: List[str], symbol: str) -> SwapOutcome:
        label = "Forward" if direction is Direction.FORWARD else "Reverse"
        submitted = 0
        last_error = None

        for attempt in range(MAX_SWAP_ATTEMPTS):
            request = SwapRequest(direction=direction, amount_in=amount_in, path=path, attempt=attempt)
            try:
                quote = await self._checked_quote(request, symbol)
                if quote is None:
                    return SwapOutcome.failed(FailureReason.ZERO_LIQUIDITY, submitted)

                if direction is Direction.REVERSE and await self._ensure_allowance(ctx, path[0], amount_in, symbol):
                    # после approve прошел блок, котировка устарела
                    quote = await self._checked_quote(request, symbol)
                    if quote is None:
                        return SwapOutcome.failed(FailureReason.ZERO_LIQUIDITY, submitted)

                gas_price = await self.gas_policy.price()
                nonce = await self.client.get_pending_nonce(ctx.address)
                if direction is Direction.FORWARD:
                    tx = self.builder.build_native_for_token(request, quote.amount_out, ctx.address, gas_price, nonce)
                else:
                    tx = self.builder.build_token_for_native(request, quote.amount_out, ctx.address, gas_price, nonce)

                submitted += 1
                tx_hash, receipt = await self._submit(ctx, tx, label)

            except ApprovalError as e:
                self.logger.error(f"❌ Approve {symbol} failed: {e}")
                return SwapOutcome.failed(e.reason, submitted)
            except ChainError as e:
                self.logger.error(f"❌ {label} error: {str(e) or 'Funds/liquidity?'}")
                if not e.retryable:
                    return SwapOutcome.failed(e.reason, submitted)
                last_error = e
                if attempt + 1 < MAX_SWAP_ATTEMPTS:
                    self.logger.warning("⚠️ Error - retrying with lower slippage...")
                continue
            except Exception as e:
                self.logger.error(f"❌ {label} unexpected error: {e}")
                return SwapOutcome.failed(FailureReason.UNKNOWN, submitted)

            if receipt.status == 1:
                self.logger.info(
                    f"✅ {label} success | Gas used: {receipt.gasUsed} | Block: {receipt.blockNumber}"
                )
                return SwapOutcome.success(tx_hash, receipt.gasUsed, receipt.blockNumber, submitted)

            self.logger.error(f"❌ {label} reverted | Gas wasted: {receipt.gasUsed}")
            if not getattr(receipt, 'logs', None):
                self.logger.warning("⚠️ No logs - likely slippage/liquidity")
            if attempt + 1 < MAX_SWAP_ATTEMPTS:
                self.logger.warning(
                    f"⚠️ Retrying with lower slippage "
                    f"({self.builder.slippage_factor(attempt + 1) // 10}% min)..."
                )
                continue
            return SwapOutcome.reverted(receipt.gasUsed, submitted)

        return SwapOutcome.failed(last_error.reason, submitted)

    async def _checked_quote(self, request: SwapRequest, symbol: str):
        """Котировка; None при нулевой ликвидности"""
        quote = await self.quoter.quote(request.amount_in, request.path, request.direction)
        self.logger.info(f"📊 Expected out: {quote.amount_out} (base units) for {symbol}")

        if quote.sufficiency is Sufficiency.ZERO:
            self.logger.error(f"❌ Zero liquidity for {symbol} - skipping")
            return None
        if quote.sufficiency is Sufficiency.LOW:
            self.logger.warning(f"⚠️ Low but positive liquidity for {symbol} - proceeding with caution")
        return quote

    async def _submit(self, ctx: WalletContext, tx: dict, label: str):
        raw_transaction = self.builder.sign(ctx.account, tx)
        tx_hash = await self.client.send_raw_transaction(raw_transaction)
        self.logger.info(f"📤 {label} TX: {tx_hash} | View: {self.config.tx_url(tx_hash)}")
        receipt = await self.client.wait_for_receipt(tx_hash, timeout=self.config.receipt_timeout)
        return tx_hash, receipt

    async def _single_shot(self, ctx: WalletContext, label: str, build) -> SwapOutcome:
        """wrap/unwrap: курс 1:1, повтор со слиппеджем ничего не даст"""
        submitted = 0
        try:
            gas_price = await self.gas_policy.price()
            nonce = await self.client.get_pending_nonce(ctx.address)
            tx = build(gas_price, nonce)
            submitted = 1
            tx_hash, receipt = await self._submit(ctx, tx, label)
        except ChainError as e:
            self.logger.error(f"❌ {label} error: {e}")
            return SwapOutcome.failed(e.reason, submitted)
        except Exception as e:
            self.logger.error(f"❌ {label} unexpected error: {e}")
            return SwapOutcome.failed(FailureReason.UNKNOWN, submitted)

        if receipt.status == 1:
            self.logger.info(f"✅ {label} success | Gas used: {receipt.gasUsed} | Block: {receipt.blockNumber}")
            return SwapOutcome.success(tx_hash, receipt.gasUsed, receipt.blockNumber, submitted)

        self.logger.error(f"❌ {label} reverted | Gas wasted: {receipt.gasUsed}")
        return SwapOutcome.reverted(receipt.gasUsed, submitted)

    # ------------------------------------------------------------------
    # Approve
    # ------------------------------------------------------------------

    async def _ensure_allowance(self, ctx: WalletContext, token_address: str, amount: int, symbol: str) -> bool:
        """True, если пришлось отправить approve"""
        try:
            allowance = await self.client.get_allowance(token_address, ctx.address, self.config.router_address)
            if allowance >= amount:
                self.logger.info(f"✅ Allowance OK for {symbol} - skipping approve")
                return False
            nonce = await self.client.get_pending_nonce(ctx.address)
        except ChainError as e:
            raise ApprovalError(f"allowance check: {e}") from e

        try:
            await self._send_approval(ctx, token_address, amount, nonce, symbol)
        except NonceConflict:
            # +1 к только что полученному nonce без повторного запроса (возможна гонка)
            self.logger.warning(f"⚠️ Nonce error on approve {symbol} - retry with +1")
            try:
                await self._send_approval(ctx, token_address, amount, nonce + 1, symbol)
            except ChainError as e:
                raise ApprovalError(str(e)) from e
        except ChainError as e:
            raise ApprovalError(str(e)) from e
        return True

    async def _send_approval(self, ctx: WalletContext, token_address: str, amount: int, nonce: int, symbol: str):
        tx = self.builder.build_approve(token_address, amount, self.gas_policy.max_gas_price, nonce)
        _tx_hash, receipt = await self._submit(ctx, tx, f"Approve {symbol}")
        if receipt.status != 1:
            raise ApprovalError(f"approve transaction reverted (gas used {receipt.gasUsed})")
        self.logger.info(f"✅ Approved {symbol}")

from typing import List

from config.constants import MIN_LIQUIDITY_OUT, REVERSE_LIQUIDITY_DIVISOR
from core.models import Direction, Quote, Sufficiency
from utils.logger import setup_logger


class SwapQuoter:
    def __init__(self, client, router_address: str, min_liquidity_out: int = MIN_LIQUIDITY_OUT,
                 reverse_divisor: int = REVERSE_LIQUIDITY_DIVISOR):
        self.client = client
        self.router_address = router_address
        self.min_liquidity_out = min_liquidity_out
        self.reverse_divisor = reverse_divisor
        self.logger = setup_logger("SwapQuoter")

    def threshold(self, direction: Direction) -> int:
        if direction is Direction.REVERSE:
            return self.min_liquidity_out // self.reverse_divisor
        return self.min_liquidity_out

    def classify(self, amount_out: int, direction: Direction) -> Sufficiency:
        if amount_out <= 0:
            return Sufficiency.ZERO
        if amount_out < self.threshold(direction):
            return Sufficiency.LOW
        return Sufficiency.ADEQUATE

    async def quote(self, amount_in: int, path: List[str], direction: Direction = Direction.FORWARD) -> Quote:
        """getAmountsOut роутера + оценка ликвидности"""
        amounts = await self.client.get_amounts_out(self.router_address, amount_in, path)
        amount_out = int(amounts[-1]) if amounts else 0
        return Quote(amount_out=amount_out, sufficiency=self.classify(amount_out, direction))

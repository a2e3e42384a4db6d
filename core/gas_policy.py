from web3 import Web3

from config.constants import BASE_GAS_PRICE, MAX_GAS_PRICE, MIN_GAS_PRICE
from core.errors import ChainError
from utils.logger import setup_logger


class GasPolicy:
    def __init__(self, client, min_gas_price: int = MIN_GAS_PRICE,
                 max_gas_price: int = MAX_GAS_PRICE, base_gas_price: int = BASE_GAS_PRICE):
        self.client = client
        self.min_gas_price = min_gas_price
        self.max_gas_price = max_gas_price
        self.base_gas_price = base_gas_price
        self.logger = setup_logger("GasPolicy")

    async def price(self) -> int:
        """Цена газа из сети, зажатая в [min, max]"""
        try:
            gas_price = await self.client.get_gas_price()
        except ChainError as e:
            self.logger.warning(f"⚠️ Fee error, fallback {Web3.from_wei(self.max_gas_price, 'gwei')} gwei: {e}")
            return self.max_gas_price

        if not gas_price:
            gas_price = self.base_gas_price

        # Слишком дешевый газ считаем недостоверным и берем максимум
        if gas_price < self.min_gas_price or gas_price > self.max_gas_price:
            gas_price = self.max_gas_price

        self.logger.debug(f"⛽ Gas: {Web3.from_wei(gas_price, 'gwei')} gwei")
        return gas_price

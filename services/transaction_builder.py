import time
from typing import List, Optional

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from web3 import Web3

from config.constants import (
    DEADLINE_MINUTES,
    GAS_LIMITS,
    SELECTORS,
    SLIPPAGE_DENOMINATOR,
    SLIPPAGE_FIRST_ATTEMPT,
    SLIPPAGE_RETRY,
)
from core.errors import MalformedRequest
from core.models import SwapRequest


class TransactionBuilder:
    """Собирает calldata (селектор + ABI-аргументы) и готовые к подписи транзакции"""

    def __init__(self, config):
        self.config = config
        self.router_address = Web3.to_checksum_address(config.router_address)
        self.wrapped_native_address = Web3.to_checksum_address(config.wrapped_native_address)

    @staticmethod
    def slippage_factor(attempt: int) -> int:
        return SLIPPAGE_FIRST_ATTEMPT if attempt == 0 else SLIPPAGE_RETRY

    def min_amount_out(self, amount_out: int, attempt: int) -> int:
        return amount_out * self.slippage_factor(attempt) // SLIPPAGE_DENOMINATOR

    @staticmethod
    def deadline(now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        return int(now) + DEADLINE_MINUTES * 60

    @staticmethod
    def encode_call(selector: str, types: List[str], values: list) -> str:
        try:
            return selector + encode(types, values).hex()
        except (EncodingError, TypeError, ValueError) as e:
            raise MalformedRequest(f"Cannot encode {selector}: {e}") from e

    def _transaction(self, to: str, data: str, value: int, gas_limit: int, gas_price: int, nonce: int) -> dict:
        return {
            'to': to,
            'data': data,
            'value': value,
            'gas': gas_limit,
            'gasPrice': gas_price,
            'nonce': nonce,
            'chainId': self.config.chain_id,
        }

    def build_native_for_token(self, request: SwapRequest, amount_out: int, recipient: str,
                               gas_price: int, nonce: int) -> dict:
        path = [Web3.to_checksum_address(token) for token in request.path]
        data = self.encode_call(
            SELECTORS['SWAP_NATIVE_FOR_TOKENS'],
            ['uint256', 'address[]', 'address', 'uint256'],
            [self.min_amount_out(amount_out, request.attempt), path, recipient, self.deadline()]
        )
        return self._transaction(self.router_address, data, request.amount_in, GAS_LIMITS['swap'], gas_price, nonce)

    def build_token_for_native(self, request: SwapRequest, amount_out: int, recipient: str,
                               gas_price: int, nonce: int) -> dict:
        path = [Web3.to_checksum_address(token) for token in request.path]
        data = self.encode_call(
            SELECTORS['SWAP_TOKENS_FOR_NATIVE'],
            ['uint256', 'uint256', 'address[]', 'address', 'uint256'],
            [request.amount_in, self.min_amount_out(amount_out, request.attempt), path, recipient, self.deadline()]
        )
        return self._transaction(self.router_address, data, 0, GAS_LIMITS['swap'], gas_price, nonce)

    def build_approve(self, token_address: str, amount: int, gas_price: int, nonce: int) -> dict:
        data = self.encode_call(SELECTORS['APPROVE'], ['address', 'uint256'], [self.router_address, amount])
        return self._transaction(Web3.to_checksum_address(token_address), data, 0,
                                 GAS_LIMITS['approve'], gas_price, nonce)

    def build_unwrap(self, amount: int, gas_price: int, nonce: int) -> dict:
        data = self.encode_call(SELECTORS['WITHDRAW'], ['uint256'], [amount])
        return self._transaction(self.wrapped_native_address, data, 0, GAS_LIMITS['wrap'], gas_price, nonce)

    def build_wrap(self, amount: int, gas_price: int, nonce: int) -> dict:
        return self._transaction(self.wrapped_native_address, SELECTORS['DEPOSIT'], amount,
                                 GAS_LIMITS['wrap'], gas_price, nonce)

    @staticmethod
    def sign(account, transaction: dict) -> bytes:
        try:
            return account.sign_transaction(transaction).raw_transaction
        except (TypeError, ValueError) as e:
            raise MalformedRequest(f"Cannot sign transaction: {e}") from e

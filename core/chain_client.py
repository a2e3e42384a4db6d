import asyncio
from typing import List, Optional

import requests
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError, Web3ValidationError

from config.constants import ERC20_ABI, ROUTER_ABI
from core.errors import (
    ChainError,
    ExecutionReverted,
    InsufficientFunds,
    MalformedRequest,
    NonceConflict,
    ReceiptTimeout,
    TransportError,
)
from core.proxy_manager import ProxyManager
from utils.logger import setup_logger

# JSON-RPC код, которым geth-совместимые ноды помечают revert
REVERT_ERROR_CODE = 3

_NONCE_MARKERS = ('nonce too low', 'nonce too high', 'invalid nonce', 'already known',
                  'replacement transaction underpriced')
_FUNDS_MARKERS = ('insufficient funds', 'insufficient balance')


def _rpc_error_payload(exc: Exception) -> dict:
    """Достаем {'code', 'message'} из ответа ноды, если он есть"""
    rpc_response = getattr(exc, 'rpc_response', None)
    if isinstance(rpc_response, dict) and isinstance(rpc_response.get('error'), dict):
        return rpc_response['error']
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0]
    return {}


def classify_error(exc: Exception) -> ChainError:
    """Переводит исключения web3/requests в ChainError с явной категорией"""
    if isinstance(exc, ChainError):
        return exc

    if isinstance(exc, TimeExhausted):
        return ReceiptTimeout(str(exc))
    if isinstance(exc, ContractLogicError):
        return ExecutionReverted(str(exc))
    if isinstance(exc, (requests.RequestException, ConnectionError, TimeoutError)):
        return TransportError(str(exc))

    payload = _rpc_error_payload(exc)
    message = str(payload.get('message') or exc).lower()

    if payload.get('code') == REVERT_ERROR_CODE or 'execution reverted' in message:
        return ExecutionReverted(message)
    if any(marker in message for marker in _FUNDS_MARKERS):
        return InsufficientFunds(message)
    if any(marker in message for marker in _NONCE_MARKERS):
        return NonceConflict(message)
    if isinstance(exc, Web3RPCError):
        return ChainError(message)
    if isinstance(exc, (Web3ValidationError, TypeError, ValueError)):
        return MalformedRequest(message)
    return ChainError(message)


class ChainClient:
    """Обертка над одним JSON-RPC подключением (опционально через прокси)"""

    def __init__(self, web3: Web3, chain_id: int, proxy_label: str = "direct"):
        self.web3 = web3
        self.chain_id = chain_id
        self.proxy_label = proxy_label
        self.logger = setup_logger("ChainClient")

    @classmethod
    def connect(cls, rpc_url: str, chain_id: int, proxy: Optional[str] = None) -> "ChainClient":
        proxy_manager = ProxyManager(proxy)
        proxy_manager.set_logger(setup_logger("ProxyManager"))
        web3 = proxy_manager.create_web3_instance(rpc_url)
        return cls(web3, chain_id, proxy_manager.describe())

    async def _run(self, func, *args, **kwargs):
        """Синхронный вызов web3 в отдельном потоке + классификация ошибок"""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except Exception as e:
            raise classify_error(e) from e

    def _token(self, token_address: str):
        return self.web3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ERC20_ABI)

    async def get_balance(self, address: str) -> int:
        return await self._run(self.web3.eth.get_balance, address)

    async def get_gas_price(self) -> int:
        return await self._run(lambda: self.web3.eth.gas_price)

    async def get_pending_nonce(self, address: str) -> int:
        return await self._run(self.web3.eth.get_transaction_count, address, 'pending')

    async def get_token_balance(self, token_address: str, owner: str) -> int:
        return await self._run(self._token(token_address).functions.balanceOf(owner).call)

    async def get_token_decimals(self, token_address: str) -> int:
        return await self._run(self._token(token_address).functions.decimals().call)

    async def get_allowance(self, token_address: str, owner: str, spender: str) -> int:
        spender = Web3.to_checksum_address(spender)
        return await self._run(self._token(token_address).functions.allowance(owner, spender).call)

    async def get_amounts_out(self, router_address: str, amount_in: int, path: List[str]) -> List[int]:
        router = self.web3.eth.contract(address=Web3.to_checksum_address(router_address), abi=ROUTER_ABI)
        checksum_path = [Web3.to_checksum_address(token) for token in path]
        return await self._run(router.functions.getAmountsOut(amount_in, checksum_path).call)

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        tx_hash = await self._run(self.web3.eth.send_raw_transaction, raw_transaction)
        return Web3.to_hex(tx_hash)

    async def wait_for_receipt(self, tx_hash: str, timeout: int = 180):
        return await self._run(self.web3.eth.wait_for_transaction_receipt, tx_hash, timeout=timeout)

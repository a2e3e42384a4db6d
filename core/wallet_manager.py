import os
from typing import Dict, List, Optional

from eth_account import Account

from core.chain_client import ChainClient
from core.errors import ChainError, ConfigurationError
from core.models import TokenBalance, WalletContext
from utils.logger import setup_logger, short_address


class Wallet:
    def __init__(self, name: str, private_key: str):
        self.name = name
        self.account = Account.from_key(private_key)
        self.address = self.account.address


class WalletManager:
    def __init__(self, config):
        self.config = config
        self.wallets: List[Wallet] = []
        self.logger = setup_logger("WalletManager")

    @staticmethod
    def _read_lines(path: str) -> List[str]:
        """Непустые строки файла без комментариев"""
        with open(path, 'r', encoding='utf-8') as f:
            lines = [line.strip() for line in f]
        return [line for line in lines if line and not line.startswith('#')]

    def load_private_keys(self, path: str = None) -> List[str]:
        """Ключи по одному в строке, с 0x или без"""
        path = path or self.config.private_keys_file
        if not os.path.exists(path):
            raise ConfigurationError(f"Private keys file not found: {path}")

        keys = []
        for index, line in enumerate(self._read_lines(path), 1):
            key = line if line.startswith('0x') else f"0x{line}"
            try:
                Account.from_key(key)
            except Exception:
                self.logger.warning(f"⚠️ Skipping invalid private key on line {index}")
                continue
            keys.append(key)

        if not keys:
            raise ConfigurationError(f"No valid private keys in {path}")

        self.logger.info(f"🔑 Loaded {len(keys)} wallet(s)")
        return keys

    def load_proxies(self, path: str = None) -> List[str]:
        """Прокси необязательны: нет файла = прямое подключение"""
        path = path or self.config.proxies_file
        if not os.path.exists(path):
            self.logger.info(f"🔗 No proxies file ({path}) - direct connections")
            return []

        proxies = self._read_lines(path)
        self.logger.info(f"🔌 Loaded {len(proxies)} proxies")
        return proxies

    def load_wallets(self, private_keys: List[str]) -> List[Wallet]:
        self.wallets = [Wallet(f"wallet_{i}", key) for i, key in enumerate(private_keys, 1)]
        return self.wallets

    def connect(self, wallet: Wallet, proxy: Optional[str] = None) -> ChainClient:
        client = ChainClient.connect(self.config.rpc_url, self.config.chain_id, proxy)
        self.logger.info(f"🌐 {wallet.name} {short_address(wallet.address)} via {client.proxy_label}")
        return client

    async def snapshot(self, wallet: Wallet, client: ChainClient) -> WalletContext:
        """Нативный баланс + ненулевые балансы токенов из списка пар"""
        native_balance = await client.get_balance(wallet.address)

        tokens: Dict[str, TokenBalance] = {}
        for pair in self.config.swap_pairs:
            try:
                balance = await client.get_token_balance(pair.output, wallet.address)
                if balance <= 0:
                    continue
                decimals = await client.get_token_decimals(pair.output)
            except ChainError as e:
                self.logger.debug(f"Token {pair.symbol} balance unavailable: {e}")
                continue
            tokens[pair.output] = TokenBalance(balance=balance, decimals=decimals)

        return WalletContext(
            address=wallet.address,
            account=wallet.account,
            client=client,
            native_balance=native_balance,
            tokens=tokens,
        )

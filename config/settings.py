import os
import json
from typing import Dict, List, Optional
from dotenv import load_dotenv
from config import constants
from core.models import SwapPair
from utils.logger import setup_logger
from utils.input_utils import parse_swap_count

load_dotenv()


class Config:
    def __init__(self, config_path: str = "config/config.json"):
        self.logger = setup_logger("Config")
        self.config_path = config_path
        self.config_data = {}

        # Значения по умолчанию для OPN Testnet
        self.rpc_url = constants.DEFAULT_RPC_URL
        self.chain_id = constants.CHAIN_ID
        self.native_symbol = constants.NATIVE_SYMBOL
        self.explorer_url = constants.EXPLORER_URL
        self.router_address = constants.ROUTER_ADDRESS
        self.wrapped_native_address = constants.WOPN_ADDRESS
        self.private_keys_file = "private_keys.txt"
        self.proxies_file = "proxies.txt"
        self.include_wopn_pair = False
        self.swap_count: Optional[int] = None

        self.operation_delay_range = constants.OPERATION_DELAY_RANGE
        self.wallet_delay_range = constants.WALLET_DELAY_RANGE
        self.settle_delay_seconds = constants.SETTLE_DELAY_SECONDS
        self.cycle_rest_seconds = constants.CYCLE_REST_SECONDS
        self.receipt_timeout = constants.RECEIPT_TIMEOUT_SECONDS

        self._pairs_config: List[Dict] = [pair.copy() for pair in constants.DEFAULT_SWAP_PAIRS]

        self.load_config()
        self._apply_env_overrides()
        self.swap_pairs = self._build_swap_pairs()

    def load_config(self):
        """Загрузка необязательных переопределений из JSON файла"""
        if not os.path.exists(self.config_path):
            self.logger.debug(f"ℹ️ No config file at {self.config_path}, using built-in defaults")
            return

        try:
            with open(self.config_path, 'r') as f:
                self.config_data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"❌ JSON decode error in config: {e}")
            return

        network = self._process_network_config(self._safe_get(self.config_data, 'network', {}))
        self.rpc_url = network.get('rpc_url', self.rpc_url)
        self.chain_id = int(network.get('chain_id', self.chain_id))
        self.explorer_url = network.get('explorer', self.explorer_url)
        self.router_address = network.get('router', self.router_address)
        self.wrapped_native_address = network.get('wrapped_native', self.wrapped_native_address)

        tokens = self._safe_get(self.config_data, 'tokens', None)
        if isinstance(tokens, list) and tokens:
            self._pairs_config = [t for t in tokens if isinstance(t, dict) and t.get('output')]

        timing = self._safe_get(self.config_data, 'timing', {})
        if 'cycle_rest_seconds' in timing:
            self.cycle_rest_seconds = float(timing['cycle_rest_seconds'])
        if 'operation_delay_range' in timing:
            self.operation_delay_range = tuple(timing['operation_delay_range'])
        if 'wallet_delay_range' in timing:
            self.wallet_delay_range = tuple(timing['wallet_delay_range'])
        if 'settle_delay_seconds' in timing:
            self.settle_delay_seconds = float(timing['settle_delay_seconds'])

        self.logger.info(f"✅ Configuration loaded from {self.config_path}")

    def _safe_get(self, data, key, default):
        """Безопасное получение значения из словаря"""
        if not isinstance(data, dict):
            return default
        return data.get(key, default)

    def _process_network_config(self, network_config) -> dict:
        """Подстановка переменных окружения в RPC URL"""
        if not isinstance(network_config, dict):
            return {}

        processed = network_config.copy()
        rpc_url = processed.get('rpc_url', '')
        if isinstance(rpc_url, str) and rpc_url.startswith('${') and rpc_url.endswith('}'):
            env_var = rpc_url[2:-1]
            processed['rpc_url'] = os.getenv(env_var, self.rpc_url)
        return processed

    def _apply_env_overrides(self):
        """Переменные окружения имеют приоритет над JSON"""
        self.rpc_url = os.getenv('RPC_URL', self.rpc_url)
        self.private_keys_file = os.getenv('PRIVATE_KEYS_FILE', self.private_keys_file)
        self.proxies_file = os.getenv('PROXIES_FILE', self.proxies_file)
        self.include_wopn_pair = os.getenv('INCLUDE_WOPN_PAIR', '').strip().lower() in ('1', 'true', 'yes')

        rest = os.getenv('CYCLE_REST_SECONDS')
        if rest:
            try:
                self.cycle_rest_seconds = float(rest)
            except ValueError:
                self.logger.warning(f"⚠️ Invalid CYCLE_REST_SECONDS={rest!r}, keeping {self.cycle_rest_seconds}")

        swap_count = os.getenv('SWAP_COUNT')
        if swap_count is not None:
            self.swap_count = parse_swap_count(swap_count)

    def _build_swap_pairs(self) -> List[SwapPair]:
        pairs_config = list(self._pairs_config)
        if self.include_wopn_pair:
            known = {p['output'].lower() for p in pairs_config}
            if self.wrapped_native_address.lower() not in known:
                pairs_config.append({
                    "output": self.wrapped_native_address,
                    "symbol": constants.WOPN_SWAP_PAIR['symbol'],
                    "decimals": constants.WOPN_SWAP_PAIR['decimals'],
                })

        return [
            SwapPair(
                output=p['output'],
                symbol=p.get('symbol', 'TOKEN'),
                decimals=int(p.get('decimals', 18)),
            )
            for p in pairs_config
        ]

    def get_swap_pair(self, token_address: str) -> Optional[SwapPair]:
        """Поиск пары по адресу токена"""
        for pair in self.swap_pairs:
            if pair.output.lower() == token_address.lower():
                return pair
        return None

    def is_wrapped_native(self, token_address: str) -> bool:
        return token_address.lower() == self.wrapped_native_address.lower()

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"

import re
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from web3 import HTTPProvider, Web3
from web3.middleware import ExtraDataToPOAMiddleware

_PROXY_RE = re.compile(r'^(?:(?P<username>[^:@/]+):(?P<password>[^@/]+)@)?(?P<host>[^:@/]+):(?P<port>\d{1,5})$')


class ProxyManager:
    def __init__(self, proxy: Optional[str] = None, request_timeout: int = 30):
        self.proxy = proxy.strip() if proxy else None
        self.request_timeout = request_timeout
        self.logger = None

    def set_logger(self, logger):
        """Установка логгера"""
        self.logger = logger

    def build_proxy_url(self) -> Optional[str]:
        """Построение URL для прокси: host:port, user:pass@host:port или готовый http(s) URL"""
        if not self.proxy:
            return None

        if self.proxy.startswith(('http://', 'https://')):
            return self.proxy

        match = _PROXY_RE.match(self.proxy)
        if not match or not 1 <= int(match.group('port')) <= 65535:
            return None

        return f"http://{self.proxy}"

    def create_web3_instance(self, rpc_url: str) -> Web3:
        """Создание экземпляра Web3 с прокси и retry стратегией"""
        proxy_url = self.build_proxy_url()

        if proxy_url:
            session = requests.Session()

            retry_strategy = Retry(
                total=3,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["HEAD", "GET", "OPTIONS", "POST"],
                backoff_factor=1
            )

            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
            session.proxies = {
                'http': proxy_url,
                'https': proxy_url
            }

            provider = HTTPProvider(rpc_url, session=session, request_kwargs={'timeout': self.request_timeout})
            web3 = Web3(provider)
        else:
            if self.proxy and self.logger:
                self.logger.warning(f"⚠️ Proxy fail: {self.proxy[:20]}... -> direct")
            web3 = Web3(HTTPProvider(rpc_url, request_kwargs={'timeout': self.request_timeout}))

        self._inject_poa_middleware(web3)
        return web3

    def _inject_poa_middleware(self, web3: Web3):
        """Инжект middleware для сетей PoA"""
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    def describe(self) -> str:
        if not self.build_proxy_url():
            return "direct"
        host = self.proxy.rsplit('@', 1)[-1]
        return f"proxy {host}"

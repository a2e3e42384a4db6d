import asyncio
import sys

from config.settings import Config
from core.errors import ConfigurationError
from core.models import FleetConfig
from core.scheduler import FleetScheduler
from core.wallet_manager import WalletManager
from utils.logger import setup_logger

logger = setup_logger("OPNSwapBot")


def print_banner(config):
    print("=" * 50)
    print("🤖 OPN Testnet Swap Bot")
    print(f"🌐 RPC: {config.rpc_url} (chain {config.chain_id})")
    print(f"🔁 Pairs: {', '.join(pair.symbol for pair in config.swap_pairs)}")
    print("=" * 50)


def _handle_loop_exception(loop, context):
    """Необработанные ошибки фоновых задач логируем, но не падаем"""
    exception = context.get('exception')
    logger.error(f"❌ Unhandled async error: {exception or context.get('message')}")


async def run_bot(config, fleet_config: FleetConfig, wallet_manager: WalletManager):
    asyncio.get_running_loop().set_exception_handler(_handle_loop_exception)
    scheduler = FleetScheduler(config, fleet_config, wallet_manager)
    await scheduler.run_forever()


def main():
    config = Config()
    print_banner(config)

    wallet_manager = WalletManager(config)
    try:
        private_keys = wallet_manager.load_private_keys()
    except ConfigurationError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    proxies = wallet_manager.load_proxies()
    if proxies and len(proxies) != len(private_keys):
        logger.warning(f"⚠️ {len(private_keys)} wallets / {len(proxies)} proxies - cycling proxies")

    fleet_config = FleetConfig(
        private_keys=private_keys,
        proxies=proxies,
        swap_count=config.swap_count,
    )

    try:
        asyncio.run(run_bot(config, fleet_config, wallet_manager))
    except KeyboardInterrupt:
        logger.info("👋 Shutting down...")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"❌ Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

from web3 import Web3

# ✅ СЕТЬ OPN TESTNET
DEFAULT_RPC_URL = "https://testnet-rpc.iopn.tech/"
CHAIN_ID = 984
NATIVE_SYMBOL = "OPN"
EXPLORER_URL = "https://testnet.iopn.tech"

# Контракты
ROUTER_ADDRESS = "0xB489bce5c9c9364da2D1D1Bc5CE4274F63141885"
WOPN_ADDRESS = "0xBc022C9dEb5AF250A526321d16Ef52E39b4DBD84"
OPNT_ADDRESS = "0x2aEc1Db9197Ff284011A6A1d0752AD03F5782B0d"
TUSDT_ADDRESS = "0x3e01b4d892E0D0A219eF8BBe7e260a6bc8d9B31b"
TBNB_ADDRESS = "0x92cF36713a5622351c9489D5556B90B321873607"

DEFAULT_SWAP_PAIRS = [
    {"output": OPNT_ADDRESS, "symbol": "OPNT", "decimals": 18},
    {"output": TUSDT_ADDRESS, "symbol": "TUSDT", "decimals": 18},
    {"output": TBNB_ADDRESS, "symbol": "tBNB", "decimals": 18},
]
WOPN_SWAP_PAIR = {"output": WOPN_ADDRESS, "symbol": "WOPN", "decimals": 18}

SELECTORS = {
    'SWAP_NATIVE_FOR_TOKENS': '0xa24fefef',
    'SWAP_TOKENS_FOR_NATIVE': '0xe0f44df2',
    'APPROVE': '0x095ea7b3',
    'WITHDRAW': '0x2e1a7d4d',
    'DEPOSIT': '0xd0e30db0',
}

# ⛽ Газ
GAS_LIMITS = {
    'swap': 300000,
    'approve': 100000,
    'wrap': 300000,
}
BASE_GAS_PRICE = Web3.to_wei(11, 'gwei')
MIN_GAS_PRICE = Web3.to_wei(10, 'gwei')
MAX_GAS_PRICE = Web3.to_wei(15, 'gwei')

# Слиппедж в тысячных: 95% котировки на первой попытке, 50% на повторе
SLIPPAGE_FIRST_ATTEMPT = 950
SLIPPAGE_RETRY = 500
SLIPPAGE_DENOMINATOR = 1000
MAX_SWAP_ATTEMPTS = 2
DEADLINE_MINUTES = 20

# Размеры свапов (доли баланса)
FORWARD_PERCENT_BASE = 0.01
FORWARD_TOLERANCE = 0.005
FORWARD_MIN_AMOUNT = Web3.to_wei(0.001, 'ether')
MIN_NATIVE_FOR_FORWARD = Web3.to_wei(0.002, 'ether')
REVERSE_PERCENT_BASE = 0.10
REVERSE_TOLERANCE = 0.05
DUST_THRESHOLD = 0.000001  # в единицах токена

# Ликвидность: порог низкий, чтобы пропускать маленькие пулы
MIN_LIQUIDITY_OUT = 10 ** 12
# Обратные свапы отдают OPN, поэтому порог в 100 раз ниже (подбирается вручную)
REVERSE_LIQUIDITY_DIVISOR = 100

# ⏳ Тайминги (секунды)
OPERATION_DELAY_RANGE = (5, 30)
WALLET_DELAY_RANGE = (10, 60)
SETTLE_DELAY_SECONDS = 3
CYCLE_REST_SECONDS = 86400
RECEIPT_TIMEOUT_SECONDS = 180

# Количество forward-свапов на кошелек
DEFAULT_SWAP_COUNT = 3
MIN_SWAP_COUNT = 1
MAX_SWAP_COUNT = 50

ROUTER_ABI = [
    {
        "inputs": [
            {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
            {"internalType": "address[]", "name": "path", "type": "address[]"}
        ],
        "name": "getAmountsOut",
        "outputs": [{"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function"
    }
]

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [
            {"name": "_owner", "type": "address"},
            {"name": "_spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function"
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "type": "function"
    }
]

"""Network, protocol and service constants."""

# Ethereum network
MAINNET_CHAIN_ID = 1
GOERLI_CHAIN_ID = 5
SEPOLIA_CHAIN_ID = 11155111

DEFAULT_GAS_LIMIT = 21000
MAX_GAS_PRICE = 100_000_000_000_000
MIN_GAS_PRICE = 1_000_000_000

MAX_BLOCK_RANGE = 10000
DEFAULT_BLOCK_TIMEOUT = 30000  # milliseconds

# DEX protocol addresses
UNISWAP_V2_ROUTER = "0x7a250d5630b4cf539739df2c5dacb4c659f2488d"
UNISWAP_V3_ROUTER = "0xE592427A0AEce92De3Edee1F18E0157C05861564"
SUSHISWAP_ROUTER = "0xd9e1cE17f2641f24aE83637ab66a2cca9C378B9F"

UNISWAP_V2_FACTORY = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
UNISWAP_V3_FACTORY = "0x1F98431c8aD98523631AE4a59f267346ea31F984"
SUSHISWAP_FACTORY = "0xC0AEe478e3658e2610c5F7A4A2E1777cE9e4f2Ac"

# Redis
REDIS_DEFAULT_CHANNEL = "mev_swaps"
REDIS_DEFAULT_POOL_SIZE = 10
REDIS_DEFAULT_CONNECTION_TIMEOUT = 5000
REDIS_DEFAULT_READ_TIMEOUT = 3000

# Monitoring
DEFAULT_METRICS_PORT = 9090
DEFAULT_METRICS_HOST = "127.0.0.1"
HEALTH_CHECK_INTERVAL = 30  # seconds
STATS_COLLECTION_INTERVAL = 60  # seconds

# Mempool
MEMPOOL_DEFAULT_POLL_INTERVAL = 100  # milliseconds
MEMPOOL_DEFAULT_BATCH_SIZE = 100
MEMPOOL_DEFAULT_MAX_CONCURRENT_REQUESTS = 50
MEMPOOL_DEFAULT_REQUEST_TIMEOUT = 10000  # milliseconds

# Flashbots
FLASHBOTS_DEFAULT_RPC_URL = "https://relay.flashbots.net"
FLASHBOTS_DEFAULT_POLL_INTERVAL = 1000  # milliseconds
FLASHBOTS_DEFAULT_MAX_CONCURRENT_REQUESTS = 20
FLASHBOTS_DEFAULT_REQUEST_TIMEOUT = 15000  # milliseconds
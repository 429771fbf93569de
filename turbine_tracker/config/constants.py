"""
Application constants.

Centralized constants for the indexer.
"""

# ========================================================================
# CONTRACT CONSTANTS
# ========================================================================

# Turbine contract on Polygon and the signature of the tracked event
CONTRACT_ADDRESS = "0x07Ff4e06865de4934409Aa6eCea503b08Cc1C78d"
TOPIC_0 = "0xaf38268b77f6114a774b9861310e0e0901459cd04dbcde707ad7137ed869d50c"

# Token decimals
LGNS_DECIMALS = 9  # silence amount (topic[2])
USDT_DECIMALS = 6  # USDT on Polygon (topic[3])

DEFAULT_RPC_URL = "https://polygon-bor-rpc.publicnode.com"

# Fallback estimator anchor, replaced on the first chain info refresh
FALLBACK_ANCHOR_BLOCK = 80308548
FALLBACK_ANCHOR_TIMESTAMP_MS = 1734213600000

# ========================================================================
# SYNC CONSTANTS
# ========================================================================

BLOCK_INTERVAL_MS = 2000  # Polygon produces a block roughly every 2s
DEFAULT_BATCH_SIZE = 1000  # Blocks per eth_getLogs request
BATCH_DELAY_SECONDS = 0.2  # Pacing between batches
RETRY_DELAY_SECONDS = 5.0  # Fixed delay before a failed sync restarts
RPC_SWITCH_DELAY_SECONDS = 0.5  # Settle delay after swapping RPC endpoint
CHAIN_INFO_REFRESH_INTERVAL_SECONDS = 4 * 60 * 60

# RPC provider HTTP / executor timeouts (in seconds)
RPC_TIMEOUT = 30.0
RPC_EXECUTOR_MAX_WORKERS = 4

# ========================================================================
# STATS CONSTANTS
# ========================================================================

DEFAULT_STAT_THRESHOLD = 1.0
DEFAULT_DISPLAY_THRESHOLD = 100.0

# Max decimal digits of a uint256 rendered in base 10
UINT256_MAX_DIGITS = 78

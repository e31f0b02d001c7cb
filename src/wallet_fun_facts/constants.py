"""
Fixed thresholds, sentinel addresses, fallback messages and label tables.
"""

# Native-asset sentinel addresses used in balance and transfer records
NATIVE_ETH_ADDRESS = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"
ZKSYNC_ETH_ADDRESS = "0x000000000000000000000000000000000000800a"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

NATIVE_TOKEN_ADDRESSES = frozenset({NATIVE_ETH_ADDRESS, ZKSYNC_ETH_ADDRESS})

# Fun fact identifiers
PNL = "pnl"
LABELS = "labels"
SMART_MONEY = "smart_money"
RUGGED_PROJECTS = "rugged_projects"
ETH_BENCHMARK = "eth_benchmark"
PORTFOLIO_ATH = "portfolio_ath"

FUN_FACT_ORDER = (PNL, LABELS, SMART_MONEY,
                  RUGGED_PROJECTS, ETH_BENCHMARK, PORTFOLIO_ATH)

FUN_FACT_TITLES = {
    PNL: "Profit & Loss",
    LABELS: "Wallet Label",
    SMART_MONEY: "Smart Money",
    RUGGED_PROJECTS: "Rugged Projects",
    ETH_BENCHMARK: "ETH Benchmark",
    PORTFOLIO_ATH: "Portfolio at ATH",
}

# Fallback messages (None means the card is skipped)
PNL_FALLBACK = "Only mist—too little history to read."
RUGGED_CLEAR_MESSAGE = "No rugged projects detected—clear skies ahead"
ETH_BENCHMARK_FALLBACK = (
    "No meaningful history yet for young wallets, CEX-only flows excluded")
PORTFOLIO_ATH_FALLBACK = "No meaningful history yet for young/empty wallets"

# P&L
PNL_MIN_PERCENT = 0.01
PNL_MIN_USD = 1.0

# Rugged projects
LIQUIDITY_THRESHOLD_USD = 10_000
RUGGED_MIN_HOLDING_USD = 5
SCREENER_CHAINS = ["ethereum", "polygon", "bnb", "arbitrum", "avalanche"]

# ETH benchmark
BENCHMARK_MONTHS = 6
BENCHMARK_MIN_VOLUME_USD = 10
BENCHMARK_MIN_PRICE_COVERAGE = 0.5

# Portfolio ATH
ATH_LOOKBACK_DAYS = 365
TOP_HOLDINGS_COUNT = 30

# Highest priority first; matched exactly against Nansen label strings
LABEL_PRIORITY = [
    # Top tier traders and wealth indicators
    "Top 100 Leaderboard Trader",
    "Multiple Memecoin Whales",
    "Memecoin Whale",
    "Smart Fund",
    "Token Millionaire",

    # Wealth indicators and sector specialists
    "ETH Millionaire",
    "New Token Specialist",
    "Memecoin Specialist",
    "Gaming Specialist",
    "AI Specialist",
    "DEX Specialist",
    "RWA Specialist",

    # NFT smart money
    "Smart NFT Trader",
    "Smart NFT Collector",
    "Smart NFT Minter",
    "Smart NFT Early Adopter",

    # Emerging traders and token deployers
    "Top Token Deployer",
    "Token Deployer",
    "Emerging Smart Trader",

    # Chain specialists
    "Arbitrum Specialist",
    "Base Specialist",
    "Blast Specialist",
    "Optimism Specialist",
    "Polygon Specialist",
    "Linea Specialist",
    "Scroll Specialist",
    "Fantom Specialist",
    "Sei Specialist",
    "ZKsync Specialist",
    "BSC Specialist",
    "Avalanche Specialist",

    # DeFi users and trading behaviour
    "Staker",
    "OpenSea User",
    "Blur Trader",
    "Exit Liquidity",
]

SMART_MONEY_CATEGORY = "smart_money"

SMART_MONEY_PRIORITY = [
    "Smart Trader (2Y)",
    "180D Smart Trader",
    "90D Smart Trader",
    "30D Smart Trader",
]

SMART_MONEY_KEYWORDS = [
    "Smart Fund",
    "Smart NFT Trader",
    "Smart NFT Collector",
    "Smart NFT Minter",
    "Smart NFT Early Adopter",
]

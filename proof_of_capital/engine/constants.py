# ── Arithmetic ──
PERCENTAGE_DIVISOR = 1000           # parts-per-mille
MAX_ROYALTY_PERCENT = PERCENTAGE_DIVISOR
WAD = 10**18                        # price = collateral per WAD launch units
UINT256_MAX = 2**256 - 1

# ── Time (seconds) ──
ONE_DAY = 86_400
SEVEN_DAYS = 7 * ONE_DAY
THIRTY_DAYS = 30 * ONE_DAY
SIXTY_DAYS = 60 * ONE_DAY
ONE_YEAR = 365 * ONE_DAY
FIVE_YEARS = 5 * ONE_YEAR

# ── Governance windows ──
DEFERRED_WITHDRAWAL_DELAY = THIRTY_DAYS
DEFERRED_WITHDRAWAL_WINDOW = SEVEN_DAYS
TRADING_OPPORTUNITY_WINDOW = SIXTY_DAYS
WITHDRAWAL_REACTIVATION_WINDOW = SIXTY_DAYS

# Control window: opens every CONTROL_CYCLE starting at controlDay
MIN_CONTROL_PERIOD = 6 * 3600
MAX_CONTROL_PERIOD = 20 * ONE_DAY
CONTROL_CYCLE = ONE_YEAR

# Upper bound on levels visited by a single curve walk
MAX_LEVEL_WALK = 200_000

ZERO_ADDRESS = "0x" + "0" * 40

"""Domain constants for plans, subscriptions and address derivation.

Field limits and period bounds are part of the on-ledger record layout, so
they are fixed here rather than configured.
"""

# Record field limits (UTF-8 bytes)
MAX_PLAN_ID_LENGTH = 32
MAX_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 256

# Billing period bounds in seconds
MIN_PERIOD_DURATION = 3600  # 1 hour
MAX_PERIOD_DURATION = 31_536_000  # 365 days

# Tolerance before the formal due time during which collection is allowed
PAYMENT_GRACE_PERIOD = 300

# Integer widths of persisted counters
U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

# Address derivation domain tags
REGISTRY_SEED = "subscription_manager"
PLAN_SEED = "subscription_plan"
SUBSCRIPTION_SEED = "subscription"
CUSTODY_SEED = "provider_vault"

MAX_SEED_LENGTH = 32
DEFAULT_PROGRAM_ID = "recurpay"

# Identity that can never sign (the all-zero key)
DEFAULT_IDENTITY = "11111111111111111111111111111111"

# Token record derivation, namespaced apart from billing records
TOKEN_PROGRAM_ID = "recurpay-token"
MINT_SEED = "token_mint"
TOKEN_ACCOUNT_SEED = "token_account"

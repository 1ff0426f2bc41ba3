"""SQL schema definitions for the SQLite wallet store."""

CREATE_WALLETS_TABLE = """
CREATE TABLE IF NOT EXISTS wallets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id TEXT NOT NULL,
    address TEXT NOT NULL UNIQUE,
    encrypted_seed TEXT NOT NULL,
    iv TEXT NOT NULL,
    salt TEXT NOT NULL,
    name TEXT NOT NULL DEFAULT 'Wallet 1',
    is_default INTEGER NOT NULL DEFAULT 0,
    is_verified INTEGER NOT NULL DEFAULT 0,
    is_logged_out INTEGER NOT NULL DEFAULT 0,
    last_logout REAL,
    has_pin INTEGER NOT NULL DEFAULT 0,
    pin_hash TEXT,
    pin_salt TEXT,
    has_biometrics INTEGER NOT NULL DEFAULT 0,
    last_accessed REAL NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL,
    version INTEGER NOT NULL DEFAULT 0
);
"""

CREATE_CRYPTO_WALLETS_TABLE = """
CREATE TABLE IF NOT EXISTS crypto_wallets (
    address TEXT PRIMARY KEY,
    balances TEXT NOT NULL,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL
);
"""

# Indexes for owner listings
CREATE_WALLETS_OWNER_INDEX = """
CREATE INDEX IF NOT EXISTS idx_wallets_owner ON wallets(owner_id, status);
"""

# At most one active, logged-in default wallet per owner
CREATE_WALLETS_DEFAULT_INDEX = """
CREATE UNIQUE INDEX IF NOT EXISTS idx_wallets_owner_default ON wallets(owner_id)
WHERE is_default = 1 AND is_logged_out = 0 AND status = 'active';
"""

# All schema statements in order
SCHEMA_STATEMENTS = [
    CREATE_WALLETS_TABLE,
    CREATE_CRYPTO_WALLETS_TABLE,
    CREATE_WALLETS_OWNER_INDEX,
    CREATE_WALLETS_DEFAULT_INDEX,
]

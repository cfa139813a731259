"""
Bubble Tools — identifiers, address book and wallet for Bubble off-chain vaults.

Identifier formats:
    URL:  bubble:<b58 version (2 chars)><b58 contract>[?vault=<b58 id+url>][&file=<b58 file>]
    DID:  did:bubble:<same path and query as the URL>
    Local: ~/.bubble-tools/{addresses,servers,wallet/,config.toml}
"""

__version__ = "0.2.0"

# Identifier encoding
DID_SCHEME = "did"
BUBBLE_URL_PREFIX = "bubble:"
BUBBLE_DID_PREFIX = "did:bubble:"
ID_VERSION = 0
SUPPORTED_ID_VERSIONS = frozenset({0})
ID_VERSION_CHARS = 2  # base58 chars, left-padded with "1"

ADDRESS_SIZE = 20
FILE_ID_SIZES = (20, 32)
VAULT_ID_HEX_CHARS = 40
VAULT_PARAM_MIN_CHARS = 44  # 40 hex id chars + shortest usable url

# Vault file containing a persona's public identity (nickname & icon)
PUBLIC_ID_FILE = "0x0000000000000000000000000000000000000102"

# Local application directory
APP_DIR_NAME = ".bubble-tools"
ADDRESSES_FILE = "addresses"
SERVERS_FILE = "servers"
WALLET_DIR = "wallet"
CONFIG_FILE = "config.toml"

# Wallet key labels
DEFAULT_KEY = "default-key"
INITIAL_KEY = "initial-application-key"

# Invitations
DEFAULT_INVITE_EXPIRY = "28d"

# Temporary table of known vault servers, keyed by vault hash
KNOWN_VAULT_SERVERS = [
    {
        "hash": "0x077db7b2f0d920ab1eaf5bcfac4e58281ba017ce4c646ea332486372212ffeef",
        "name": "Bubble Private Cloud",
        "id": "0x288b32F2653C1d72043d240A7F938a114Ab69584",
        "url": "https://datonavault.com:8131",
    },
]

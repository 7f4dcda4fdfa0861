"""
OracleGate Constants

Protocol constants of the module (answer words, question format, typed data
strings, default parameters) and the logging settings read from `.env`.
"""
from dotenv import dotenv_values

# Read once at import; missing keys fall back to the defaults below
_dotenv = dotenv_values(".env")

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024   # 10MB per rotated file
LOG_BACKUP_COUNT = 5


# ==================================================================================
# ORACLE ANSWER SPACE
# ==================================================================================
# Answers and registry states are 32-byte words, mirroring the oracle's bytes32.
WORD_SIZE = 32
ZERO_STATE = b'\x00' * WORD_SIZE
INVALIDATED = b'\xff' * WORD_SIZE
ANSWER_FALSE = (0).to_bytes(WORD_SIZE, 'big')
ANSWER_TRUE = (1).to_bytes(WORD_SIZE, 'big')

UINT256_MAX = 2 ** 256 - 1
UINT32_MAX = 2 ** 32 - 1


# ==================================================================================
# QUESTION FORMAT
# ==================================================================================
# Reality.eth template delimiter (U+241F, utf-8 e2 90 9f) between id and digest
QUESTION_SEPARATOR = '␟'

# Default bool template: "%s" placeholders are filled by the question parts
DEFAULT_TEMPLATE = (
    '{"title": "Did the proposal with the id %s pass the execution of the '
    'transactions with hash 0x%s?", "lang": "en", "type": "bool", '
    '"category": "DAO proposal"}'
)


# ==================================================================================
# EIP-712 TYPED DATA
# ==================================================================================
DOMAIN_SEPARATOR_TYPE = 'EIP712Domain(uint256 chainId,address verifyingContract)'
TRANSACTION_TYPE = (
    'Transaction(address to,uint256 value,bytes data,uint8 operation,uint256 nonce)'
)


# ==================================================================================
# MODULE PARAMETERS
# ==================================================================================
ZERO_ADDRESS = '0x' + '00' * 20

# Minimum time (seconds) between end of cooldown and answer expiration
MIN_EXPIRATION_WINDOW = 60

MODULE_DEFAULT_TIMEOUT = 86400          # 24 hours for the oracle to settle
MODULE_DEFAULT_COOLDOWN = 86400         # 24 hours before execution
MODULE_DEFAULT_EXPIRATION = 7 * 86400   # 7 days of validity for a "yes"
MODULE_DEFAULT_MINIMUM_BOND = 0
MODULE_DEFAULT_TEMPLATE_ID = 0
MODULE_DEFAULT_CHAIN_ID = 1


# ==================================================================================
# MINIMAL PROXY (EIP-1167)
# ==================================================================================
PROXY_CREATION_PREFIX = bytes.fromhex('602d8060093d393df3363d3d373d3d3d363d73')
PROXY_CREATION_SUFFIX = bytes.fromhex('5af43d82803e903d91602b57fd5bf3')


# ==================================================================================
# LOGGING SETTINGS (.env)
# ==================================================================================
class ConfigString(str):
    """A `.env` string that remembers its built-in default."""

    def __new__(cls, value: str, default: str):
        obj = super().__new__(cls, value)
        obj._default = default
        return obj

    def default(self) -> str:
        return self._default


class ConfigBool(int):
    """A `.env` flag; behaves as a bool and remembers its built-in default."""

    def __new__(cls, value: bool, default: bool):
        obj = super().__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self) -> bool:
        return self._default

    def __str__(self):
        return "True" if self else "False"

    __repr__ = __str__

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def _env_string(key: str, default: str) -> ConfigString:
    raw = _dotenv.get(key)
    return ConfigString(default if raw is None else raw, default)


def _env_flag(key: str, default: bool) -> ConfigBool:
    raw = (_dotenv.get(key) or "").strip().casefold()
    if raw in _TRUE_WORDS:
        return ConfigBool(True, default)
    if raw in _FALSE_WORDS:
        return ConfigBool(False, default)
    return ConfigBool(default, default)


LOG_LEVEL = _env_string("LOG_LEVEL", "INFO")
LOG_FORMAT = _env_string("LOG_FORMAT", "%(asctime)s - %(levelname)s - %(name)s - %(message)s")
LOG_DATE_FORMAT = _env_string("LOG_DATE_FORMAT", "%Y-%m-%dT%H:%M:%S")
LOG_CONSOLE_HIGHLIGHTING = _env_flag("LOG_CONSOLE_HIGHLIGHTING", True)
LOG_FILE_OUTPUT = _env_flag("LOG_FILE_OUTPUT", False)

"""
Wallet resolution

Only the address leaves this module. The key is used once to derive it and
is not kept on the object.
"""
from eth_account import Account

from dexquote.core.errors import WalletError
from dexquote.utils.logger import get_logger, short_address

logger = get_logger(__name__)


class WalletManager:
    """Signing identity used as `from` and `recipient` of simulated swaps"""

    def __init__(self, address: str):
        self._address = address

    @classmethod
    def from_private_key(cls, private_key: str) -> "WalletManager":
        key = private_key.strip()
        if not key.startswith("0x"):
            key = "0x" + key
        try:
            account = Account.from_key(key)
        except Exception as e:
            # The library message may echo the input; keep it out of logs and errors
            raise WalletError(f"Invalid private key ({type(e).__name__})") from None

        logger.info(f"Wallet initialized: {short_address(account.address)}")
        return cls(account.address)

    @property
    def address(self) -> str:
        return self._address

    def __repr__(self) -> str:
        return f"WalletManager(address={self._address})"

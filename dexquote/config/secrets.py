"""
Secret Manager for handling sensitive keys
Loads configuration from environment variables or .env file
"""
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from dexquote.config.chains import ChainId
from dexquote.core.errors import ConfigurationError

# Load .env file
load_dotenv()


@dataclass(frozen=True)
class NodeCredentials:
    rpc_urls: list[str]
    chain_id: int
    private_key: str | None = field(default=None, repr=False)


class SecretManager:
    """
    Manages access to sensitive credentials
    """

    def get_rpc_urls(self) -> list[str]:
        """RPC endpoints, comma separated for failover"""
        raw = os.getenv("ETHEREUM_RPC_URL", "")
        urls = [u.strip() for u in raw.split(",") if u.strip()]
        if not urls:
            raise ConfigurationError("ETHEREUM_RPC_URL environment variable not set")
        for url in urls:
            if not url.startswith(("http://", "https://")):
                raise ConfigurationError(f"Invalid RPC URL: {url}")
        return urls

    def get_private_key(self) -> str | None:
        """Get wallet private key"""
        key = os.getenv("ETHEREUM_PRIVATE_KEY")
        return key.strip() if key else None

    def require_private_key(self) -> str:
        key = self.get_private_key()
        if not key:
            raise ConfigurationError("ETHEREUM_PRIVATE_KEY environment variable not set")
        return key

    def get_chain_id(self) -> int:
        raw = os.getenv("ETHEREUM_CHAIN_ID", str(ChainId.ETHEREUM.value))
        try:
            return int(raw)
        except ValueError:
            raise ConfigurationError(f"Invalid ETHEREUM_CHAIN_ID: {raw}") from None

    def load(self, require_key: bool = False) -> NodeCredentials:
        """Collect everything needed to talk to a node"""
        return NodeCredentials(
            rpc_urls=self.get_rpc_urls(),
            chain_id=self.get_chain_id(),
            private_key=self.require_private_key() if require_key else self.get_private_key(),
        )


# Global instance
secret_manager = SecretManager()

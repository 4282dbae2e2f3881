"""
Configuration for the EPGU client.
"""

from dataclasses import dataclass

from ..util.config import get_config_value

# Archives larger than this are sent in several requests by order_push_chunked
DEFAULT_CHUNK_SIZE = 5_000_000


@dataclass
class ClientConfig:
    """Configuration for the EPGU REST client"""
    base_uri: str
    chunk_size: int = DEFAULT_CHUNK_SIZE
    debug: bool = False

    def __post_init__(self):
        if self.chunk_size <= 0:
            self.chunk_size = DEFAULT_CHUNK_SIZE

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create configuration from environment variables"""
        return cls(
            base_uri=get_config_value("base_uri", ""),
            chunk_size=get_config_value("chunk_size", DEFAULT_CHUNK_SIZE, int),
            debug=get_config_value("debug", False, bool),
        )

    def validate(self) -> bool:
        """Validate the configuration"""
        if not self.base_uri:
            raise ValueError("base_uri is required")
        if not self.base_uri.startswith(("http://", "https://")):
            raise ValueError(f"base_uri must be an http(s) URI: {self.base_uri}")
        return True

"""Configuration management for Listening Lab.

All configuration is read from environment variables. The CLI loads a
``.env`` file from the working directory into the environment first.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from src.roon.models import RoonConfig

DEFAULT_CHAIN_DESCRIPTION = "HQPlayer -> USB -> DAC -> Amp -> Speakers"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_HISTORY_SIZE = 500
DEFAULT_CONNECT_TIMEOUT = 3.0
DEFAULT_SINGLE_PLAY_TIMEOUT = 10.0


def _home_file(name: str) -> Path:
    return Path.home() / name


@dataclass
class ListeningLabConfig:
    """Configuration for Listening Lab (reads from environment)."""

    # Optional: coach is disabled without a key
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_MODEL
    chain_description: str = DEFAULT_CHAIN_DESCRIPTION

    # Roon pairing
    roon_host: Optional[str] = None
    roon_port: int = 9330
    roon_token_file: Optional[Path] = None

    # REPL
    history_file: Optional[Path] = None
    history_size: int = DEFAULT_HISTORY_SIZE
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    single_play_timeout: float = DEFAULT_SINGLE_PLAY_TIMEOUT

    def __post_init__(self):
        if self.roon_token_file is None:
            self.roon_token_file = _home_file(".listening-lab-roon.json")
        if self.history_file is None:
            self.history_file = _home_file(".listening-lab-history")

    @classmethod
    def from_environment(cls) -> 'ListeningLabConfig':
        """Load configuration from environment variables.

        Returns:
            ListeningLabConfig: Loaded configuration object

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        token_file = os.getenv('ROON_TOKEN_FILE')
        history_file = os.getenv('LISTENING_LAB_HISTORY_FILE')

        try:
            config = cls(
                openai_api_key=(
                    os.getenv('OPENAI_API_KEY') or os.getenv('OPENAI_KEY') or os.getenv('LLM_API_KEY')
                ),
                openai_model=os.getenv('OPENAI_MODEL', DEFAULT_MODEL),
                chain_description=os.getenv('CHAIN_DESCRIPTION', DEFAULT_CHAIN_DESCRIPTION),
                roon_host=os.getenv('ROON_HOST') or None,
                roon_port=int(os.getenv('ROON_PORT', '9330')),
                roon_token_file=Path(token_file).expanduser() if token_file else None,
                history_file=Path(history_file).expanduser() if history_file else None,
                history_size=int(os.getenv('LISTENING_LAB_HISTORY_SIZE', str(DEFAULT_HISTORY_SIZE))),
                connect_timeout=float(
                    os.getenv('LISTENING_LAB_CONNECT_TIMEOUT', str(DEFAULT_CONNECT_TIMEOUT))
                ),
            )
        except ValueError as e:
            raise ValueError(f"Invalid numeric configuration value: {e}")

        config.validate()
        return config

    def validate(self) -> None:
        """Validate numeric settings.

        Raises:
            ValueError: If a value is out of range
        """
        if self.history_size <= 0:
            raise ValueError(f"Invalid history_size: {self.history_size}. Must be > 0")
        if self.connect_timeout <= 0:
            raise ValueError(f"Invalid connect_timeout: {self.connect_timeout}. Must be > 0")
        if self.single_play_timeout <= 0:
            raise ValueError(
                f"Invalid single_play_timeout: {self.single_play_timeout}. Must be > 0"
            )
        if self.roon_port <= 0:
            raise ValueError(f"Invalid roon_port: {self.roon_port}. Must be > 0")

    @property
    def coach_enabled(self) -> bool:
        return bool(self.openai_api_key)

    def to_roon_config(self) -> RoonConfig:
        """Convert to RoonConfig for RoonConnection.

        Returns:
            RoonConfig: Pairing configuration
        """
        return RoonConfig(
            token_file=self.roon_token_file,
            host=self.roon_host,
            port=self.roon_port,
        )

    def __repr__(self) -> str:
        """Return string representation with sensitive data masked."""
        return (
            f"ListeningLabConfig("
            f"openai_api_key={'***' if self.openai_api_key else None}, "
            f"openai_model='{self.openai_model}', "
            f"chain_description='{self.chain_description}', "
            f"roon_host={self.roon_host!r}, "
            f"roon_port={self.roon_port}, "
            f"roon_token_file='{self.roon_token_file}', "
            f"history_file='{self.history_file}', "
            f"history_size={self.history_size}, "
            f"connect_timeout={self.connect_timeout}"
            f")"
        )

"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_MATCHING_PASSES: list[dict[str, Any]] = [
    {
        "name": "exact",
        "description": "Amount within tolerance, date within 1 day, near-identical description",
        "priority": 1,
        "match_type": "exact",
        "max_days": 1,
        "min_similarity": 0.9,
        "confidence_base": 1.0,
        "confidence_scale": 0.0,
    },
    {
        "name": "strong",
        "description": "Amount within tolerance, date within 3 days, good description similarity",
        "priority": 2,
        "match_type": "fuzzy",
        "max_days": 3,
        "min_similarity": 0.7,
        "confidence_base": 0.8,
        "confidence_scale": 0.2,
    },
    {
        "name": "fuzzy",
        "description": (
            "Amount within tolerance, date within 5 days, moderate description similarity"
        ),
        "priority": 3,
        "match_type": "fuzzy",
        "max_days": 5,
        "min_similarity": 0.6,
        "confidence_base": 0.6,
        "confidence_scale": 0.2,
    },
    {
        "name": "amount_only",
        "description": "Amount within tolerance and date within 7 days, description ignored",
        "priority": 4,
        "match_type": "fuzzy",
        "max_days": 7,
        "min_similarity": None,
        "confidence_base": 0.3,
        "confidence_scale": 0.0,
    },
]

# Generic banking terms that carry no payee information
DEFAULT_STOP_WORDS: list[str] = [
    "web", "id", "ach", "ppd", "tel", "payment", "transfer", "transaction",
    "auto", "pay", "credit", "debit", "fee", "withdrawal", "deposit",
    "online", "electronic", "wire", "check", "card", "pos", "atm",
    "td", "amt", "ref", "conf", "auth", "app", "mobile", "digital",
    "inc", "corp", "llc", "ltd", "co", "company", "bank", "financial",
]

# Bank and processor aliases collapsed to one canonical token
DEFAULT_ALIASES: dict[str, str] = {
    "gsbank": "apple",
    "mercuryach": "mercury",
    "privacycom": "privacy",
    "pwp": "privacy",
    "wells": "wellsfargo",
    "fargo": "wellsfargo",
    "bankamerica": "bankofamerica",
    "bofa": "bankofamerica",
    "hylandvillage": "hyland",
}

# Run-together merchant names that also yield their parts
DEFAULT_COMPOUND_TOKENS: list[list[str]] = [
    ["mcdonald", "mazda"],
    ["smirnov", "labs"],
    ["hyland", "village"],
    ["cto", "blueprint"],
    ["alpenglow", "nexus"],
]

# Sample merchant vocabulary; replace with the merchants in your own ledger
DEFAULT_IMPORTANT_TOKENS: list[str] = [
    "apple", "amazon", "google", "microsoft", "target", "walmart", "starbucks",
    "mcdonalds", "mazda", "hyland", "smirnov", "labs", "privacy", "venmo",
    "discover", "chase", "wellsfargo", "schwab", "bankofamerica", "mercury",
    "cto", "blueprint", "alpenglow", "nexus",
]


class StatementConfig(BaseModel):
    """Configuration for bank statement normalization."""

    encoding: str = "utf-8"
    delimiter: Optional[str] = None  # None = detect from the header row
    sample_rows: int = 10
    date_keywords: list[str] = Field(default_factory=lambda: ["date", "posted"])
    amount_keywords: list[str] = Field(default_factory=lambda: ["amount", "balance"])
    description_keywords: list[str] = Field(
        default_factory=lambda: ["description", "payee", "memo"]
    )
    named_threshold: float = 0.7
    content_threshold: float = 0.8
    selection_threshold: float = 0.7
    description_min_avg_length: int = 10
    description_fallback_confidence: float = 0.6
    min_success_rate: float = 0.8


class MatchingPassConfig(BaseModel):
    """One tier of the matching ladder."""

    name: str
    description: str = ""
    priority: int = 99
    enabled: bool = True
    match_type: str = "fuzzy"
    max_days: int = 7
    min_similarity: Optional[float] = None  # None = description not compared
    confidence_base: float = 0.3
    confidence_scale: float = 0.0


class SimilarityConfig(BaseModel):
    """Vocabulary for payee/description similarity."""

    min_token_length: int = 3
    stop_words: list[str] = Field(default_factory=lambda: list(DEFAULT_STOP_WORDS))
    aliases: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_ALIASES))
    compound_tokens: list[list[str]] = Field(
        default_factory=lambda: [list(c) for c in DEFAULT_COMPOUND_TOKENS]
    )
    important_tokens: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IMPORTANT_TOKENS)
    )


class MatchingConfig(BaseModel):
    """Configuration for the transaction matcher."""

    default_tolerance: float = 0.01
    passes: list[MatchingPassConfig] = Field(
        default_factory=lambda: [MatchingPassConfig(**p) for p in DEFAULT_MATCHING_PASSES]
    )
    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)


class LedgerConfig(BaseModel):
    """Configuration for the YNAB API client."""

    base_url: str = "https://api.ynab.com/v1"
    timeout: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    lookback_months: int = 3


class ReportConfig(BaseModel):
    """Configuration for rendered reports."""

    character_limit: int = 25000
    sample_matches: int = 10
    currency_symbol: str = "$"


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    statement: StatementConfig = Field(default_factory=StatementConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


class LedgerCredentials(BaseSettings):
    """YNAB credentials read from the environment (or a .env file)."""

    model_config = SettingsConfigDict(
        env_prefix="YNAB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_token: str = ""
    budget_id: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return ReconConfig().model_dump(mode="json", exclude={"config_file_path"})


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Lists are replaced, not merged, so a YAML file that lists matching
    passes defines the full ladder.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# YNAB account reconciliation configuration
# Generated configuration file - customize as needed
# Credentials are read from YNAB_API_TOKEN and YNAB_BUDGET_ID

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")

"""
Configuration utilities.

Retrieval tuning lives in named per-domain profiles (product, legal, gtm).
Thresholds, boost factors and keyword lists are data here, not code in the
ranking algorithm.
"""

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from groundrag.errors import ConfigurationError

# Changing the embedding model means re-embedding every stored passage.
EMBEDDING_DIMENSION = 1536


LICENSING_KEYWORDS = [
    "must be licensed",
    "licensed and subscribed",
    "all Servers",
    "all Cores",
    "all vCPUs",
    "all environments",
    "production, test, development",
    "production",
    "Scope",
    "Scope of Services",
    "use with the Software",
    "must be licensed and subscribed",
]

REPORTING_KEYWORDS = [
    "promptly notify",
    "must notify",
    "must promptly notify",
    "reporting",
    "notify",
    "over-usage",
    "exceeding quantity",
    "usage exceeds",
    "exceeds the quantity",
    "exceeds the quantity of licensed",
    "exceeds the scope",
    "Section 4",
    "Section 4.4",
    "Fees and Payments",
    "usage reports",
    "must promptly notify MariaDB",
]


class Config(BaseModel):
    """Base configuration class."""

    @classmethod
    def from_yaml(cls, path: Path) -> "Config":
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from file (YAML or JSON)."""
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        elif path.suffix == ".json":
            with open(path) as f:
                data = json.load(f)
            return cls(**data)
        else:
            raise ConfigurationError(f"Unsupported config file format: {path.suffix}")


class IntentRule(BaseModel):
    """A query intent detected by regex, with the keywords it triggers.

    Attributes:
        tag: Intent name reported by the classifier
        pattern: Case-insensitive regex searched in the query
        keywords: Exact phrases to look up when the intent matches
    """

    tag: str
    pattern: str
    keywords: list[str] = Field(default_factory=list)


class DocumentAliasRule(BaseModel):
    """Document-type mention in a query and the names it refers to.

    Attributes:
        pattern: Case-insensitive regex searched in the query
        aliases: Substrings looked for in document names, most specific last
    """

    pattern: str
    aliases: list[str]


class BoostTier(BaseModel):
    """Boost factor for aliases longer than ``min_length`` characters."""

    min_length: int
    factor: float


LEGAL_INTENT_RULES = [
    IntentRule(
        tag="how_to_inform",
        pattern=(
            r"(how.*inform|how.*tell|how.*communicate|how.*email|how.*discuss|how.*advise|"
            r"how.*explain|advise.*how|suggest.*email|email.*template|how.*write)"
        ),
        keywords=REPORTING_KEYWORDS + LICENSING_KEYWORDS,
    ),
    IntentRule(
        tag="reporting_obligation",
        pattern=(
            r"(obliged|obligation|must tell|must notify|must report|required to tell|"
            r"required to notify|required to report|should tell|should notify|should report|"
            r"tell.*about|notify.*about|report.*about|inform.*about|disclose|extra node|"
            r"additional node|unlicensed node|node.*not.*license)"
        ),
        keywords=REPORTING_KEYWORDS + LICENSING_KEYWORDS,
    ),
    IntentRule(
        tag="draft_communication",
        pattern=(
            r"(generate.*email|write.*email|create.*email|draft.*email|email.*that|"
            r"email.*explain|email.*communicate|email.*to.*customer|email.*to.*client)"
        ),
        keywords=REPORTING_KEYWORDS + LICENSING_KEYWORDS,
    ),
    IntentRule(
        tag="licensing",
        pattern=(
            r"(license|licensed|unlicensed|node|server|core|vCPU|violat|complian|over.?usage|"
            r"exceed|community|enterprise|production|environment|use|using)"
        ),
        keywords=LICENSING_KEYWORDS + REPORTING_KEYWORDS,
    ),
]

LEGAL_DOCUMENT_ALIASES = [
    DocumentAliasRule(
        pattern=r"(?:bsl|business\s+source\s+license|business\s+source)",
        aliases=["bsl", "business source", "business source license"],
    ),
    DocumentAliasRule(
        pattern=r"(?:subscription\s+agreement|subscription)",
        aliases=["subscription agreement", "subscription"],
    ),
    DocumentAliasRule(
        pattern=r"(?:maxscale|max\s+scale)",
        aliases=["maxscale"],
    ),
    DocumentAliasRule(
        pattern=r"(?:privacy\s+policy|privacy)",
        aliases=["privacy", "privacy policy"],
    ),
    DocumentAliasRule(
        pattern=r"(?:terms\s+of\s+service|terms\s+and\s+conditions|terms)",
        aliases=["terms", "terms of service"],
    ),
]

DOCUMENT_BLOCK_TEMPLATE = (
    "[DOCUMENT: {document_name}] (Relevance: {similarity_percent}%)\n"
    "SECTION: {section_title}\n\n{content}"
)
PRODUCT_BLOCK_TEMPLATE = "Product: {document_name}\nSection: {section_title}\n{content}"


class RetrievalProfile(BaseModel):
    """Tuning surface for one retrieval domain.

    Attributes:
        name: Profile name
        similarity_threshold: Vector matches must score strictly above this
        max_results: Cap on vector results
        min_content_length: Passages shorter than this are never returned
        token_budget: Context token cap for the generation step
        overflow_allowance: Extra ranked slots kept for keyword rescues
        keyword_similarity: Synthetic score given to keyword matches
        keyword_max_results: Cap on keyword matches
        keyword_timeout: Seconds before the keyword step is skipped (None waits)
        intent_rules: Keyword-augmentation triggers; empty disables augmentation
        document_aliases: Document-name boosting rules; empty disables boosting
        boost_tiers: Alias-length tiers, checked in order
        default_boost: Factor for aliases no tier covers
        max_similarity: Clamp applied to boosted similarities
        block_template: Per-passage context format
        block_delimiter: Appended after every passage block
    """

    name: str
    similarity_threshold: float = 0.78
    max_results: int = 10
    min_content_length: int = 50
    token_budget: int = 1500
    overflow_allowance: int = 5
    keyword_similarity: float = 0.85
    keyword_max_results: int = 10
    keyword_timeout: float | None = None
    intent_rules: list[IntentRule] = Field(default_factory=list)
    document_aliases: list[DocumentAliasRule] = Field(default_factory=list)
    boost_tiers: list[BoostTier] = Field(
        default_factory=lambda: [
            BoostTier(min_length=10, factor=1.25),
            BoostTier(min_length=5, factor=1.20),
        ]
    )
    default_boost: float = 1.15
    max_similarity: float = 1.0
    block_template: str = DOCUMENT_BLOCK_TEMPLATE
    block_delimiter: str = "\n\n---\n\n"


BUILTIN_PROFILES: dict[str, RetrievalProfile] = {
    "product": RetrievalProfile(
        name="product",
        similarity_threshold=0.78,
        max_results=10,
        token_budget=1500,
        block_template=PRODUCT_BLOCK_TEMPLATE,
        block_delimiter="\n---\n",
    ),
    "legal": RetrievalProfile(
        name="legal",
        similarity_threshold=0.70,
        max_results=15,
        token_budget=2000,
        intent_rules=LEGAL_INTENT_RULES,
        document_aliases=LEGAL_DOCUMENT_ALIASES,
    ),
    "gtm": RetrievalProfile(
        name="gtm",
        similarity_threshold=0.70,
        max_results=15,
        token_budget=2000,
    ),
}


def get_profile(name: str) -> RetrievalProfile:
    """Return a copy of a built-in profile."""
    try:
        return BUILTIN_PROFILES[name].model_copy(deep=True)
    except KeyError:
        raise ConfigurationError(
            f"Unknown retrieval profile: {name}",
            data={"available": sorted(BUILTIN_PROFILES)},
        )


def _env_api_key() -> str | None:
    return os.getenv("OPENAI_KEY") or os.getenv("OPENAI_API_KEY")


class GroundragConfig(Config):
    """Configuration for the retrieval service."""

    openai_api_key: str | None = Field(default_factory=_env_api_key)
    openai_base_url: str | None = None
    embedding_model: str = "text-embedding-ada-002"
    embedding_dimension: int = EMBEDDING_DIMENSION
    generation_model: str = "gpt-3.5-turbo"
    moderation_enabled: bool = True

    # Store settings
    chroma_path: str | None = None
    collection_name: str = "passages"

    log_level: str = "INFO"

    # Partial overrides keyed by profile name, applied over the built-ins
    profiles: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def require_api_key(self) -> str:
        """Return the OpenAI key or fail with a configuration error."""
        if not self.openai_api_key:
            raise ConfigurationError("Missing environment variable OPENAI_KEY")
        return self.openai_api_key

    def get_profile(self, name: str) -> RetrievalProfile:
        """Built-in profile with this config's overrides applied."""
        overrides = self.profiles.get(name)

        if name not in BUILTIN_PROFILES:
            if overrides is None:
                return get_profile(name)
            return RetrievalProfile(**{"name": name, **overrides})

        profile = get_profile(name)
        if not overrides:
            return profile
        return RetrievalProfile(**{**profile.model_dump(), **overrides, "name": name})


def load_config(path: str | Path = "groundrag.yaml") -> GroundragConfig:
    """
    Load service configuration from file.

    Args:
        path: Path to config file

    Returns:
        GroundragConfig instance (defaults when the file does not exist)
    """
    path = Path(path)

    if not path.exists():
        return GroundragConfig()

    return GroundragConfig.from_file(path)

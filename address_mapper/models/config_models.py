from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

"""Config dataclasses for the address mapping tool.

These are the typed form of config/mapper.yml after schema validation and
environment overrides (see address_mapper.config.loader). Stores and the
pipeline receive them at construction instead of reading the environment at
call time.
"""

ADDRESS_MAPPINGS = "address_mappings"
CUSTOMER_COMPANIES = "customer_companies"
EXCLUSIONS = "exclusions"


@dataclass(frozen=True)
class RemoteConfig:
    """Remote version-controlled store (GitHub contents API).

    ``token`` only ever comes from the environment (.env / GITHUB_TOKEN).
    """
    enabled: bool = False
    owner: str | None = None
    repo: str | None = None
    branch: str = "main"
    token: str | None = None
    timeout_seconds: float = 10.0
    retry_on_conflict: bool = False  # 既定は再試行なし (非破壊で non-durable 扱い)
    api_base: str = "https://api.github.com"

    @property
    def is_configured(self) -> bool:
        """True when remote sync is switched on and every credential is present."""
        return bool(self.enabled and self.token and self.owner and self.repo)


@dataclass(frozen=True)
class TableConfig:
    """Where one lookup table lives in each persistence tier."""
    name: str
    remote_path: str
    local_path: str
    description: str

    def resolve_local(self, base_directory: Path) -> Path:
        p = Path(self.local_path)
        return p if p.is_absolute() else base_directory / p


DEFAULT_TABLES: dict[str, TableConfig] = {
    ADDRESS_MAPPINGS: TableConfig(
        name=ADDRESS_MAPPINGS,
        remote_path="web-app/data/address_mappings.json",
        local_path="data/address_mappings.json",
        description="address mappings",
    ),
    CUSTOMER_COMPANIES: TableConfig(
        name=CUSTOMER_COMPANIES,
        remote_path="web-app/data/customer_company.json",
        local_path="data/customer_company.json",
        description="customer→company mappings",
    ),
    EXCLUSIONS: TableConfig(
        name=EXCLUSIONS,
        remote_path="web-app/names.json",
        local_path="names.json",
        description="excluded usernames list",
    ),
}


@dataclass(frozen=True)
class PersistenceConfig:
    """Persistence tiers shared by every LookupStore."""
    remote: RemoteConfig
    local_enabled: bool = True  # serverless 環境では loader が False にする
    local_base_directory: Path = Path(".")
    tables: dict[str, TableConfig] | None = None

    def table(self, name: str) -> TableConfig:
        tables = self.tables or DEFAULT_TABLES
        return tables[name]


@dataclass(frozen=True)
class MapperConfig:
    """Root configuration object."""
    output_directory: str
    persistence: PersistenceConfig

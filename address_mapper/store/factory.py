from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from ..models.config_models import ADDRESS_MAPPINGS, CUSTOMER_COMPANIES, EXCLUSIONS, PersistenceConfig
from .codecs import AddressMapping, AddressMappingCodec, CustomerCompanyCodec, ExclusionCodec, TableCodec
from .lookup_store import LookupStore
from .remote import GitHubContentsClient
from .sources import LocalFileSource, RemoteSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stores:
    """The three process-scoped tables, injected into pipeline and admin calls."""
    address_mappings: LookupStore[dict[str, AddressMapping]]
    customer_companies: LookupStore[dict[str, str]]
    exclusions: LookupStore[list[str]]


def _build_store(
    name: str,
    codec: TableCodec,
    config: PersistenceConfig,
    client: GitHubContentsClient | None,
) -> LookupStore:
    table = config.table(name)
    remote = None
    if client is not None:
        remote = RemoteSource(client, table.remote_path, codec, retry_on_conflict=config.remote.retry_on_conflict)
    local = None
    if config.local_enabled:
        local = LocalFileSource(table.resolve_local(config.local_base_directory), codec)
    return LookupStore(name, codec, description=table.description, remote=remote, local=local)


def build_stores(config: PersistenceConfig, session: requests.Session | None = None) -> Stores:
    """Create the stores for one process. ``session`` is injectable for tests."""
    client = None
    if config.remote.is_configured:
        client = GitHubContentsClient(config.remote, session=session)
        logger.debug(f"remote persistence enabled: {config.remote.owner}/{config.remote.repo}@{config.remote.branch}")
    elif config.remote.enabled:
        logger.warning("remote persistence enabled but GITHUB_TOKEN/GITHUB_OWNER/GITHUB_REPO incomplete; using local tiers only")

    return Stores(
        address_mappings=_build_store(ADDRESS_MAPPINGS, AddressMappingCodec(), config, client),
        customer_companies=_build_store(CUSTOMER_COMPANIES, CustomerCompanyCodec(), config, client),
        exclusions=_build_store(EXCLUSIONS, ExclusionCodec(), config, client),
    )

"""
Catalog Module - Discovery-to-Catalog Pipeline.
"""

from storefront_radar.catalog.database import StoreModel
from storefront_radar.catalog.canonicalizer import canonicalize, are_equivalent
from storefront_radar.catalog.visibility import is_visible, visible_clause
from storefront_radar.catalog.state_machine import CatalogStateMachine, StatusChange
from storefront_radar.catalog.workflow import CatalogPipeline, IngestReport, run_ingestion
from storefront_radar.catalog.recheck import RecheckPass, RecheckReport, run_recheck
from storefront_radar.catalog.service import (
    upsert_store,
    list_visible_stores,
    count_visible_stores,
    search_visible_stores,
    get_store_admin,
    list_all_stores_admin,
    block_store,
    unblock_store,
)

__all__ = [
    "StoreModel",
    "canonicalize",
    "are_equivalent",
    "is_visible",
    "visible_clause",
    "CatalogStateMachine",
    "StatusChange",
    "CatalogPipeline",
    "IngestReport",
    "run_ingestion",
    "RecheckPass",
    "RecheckReport",
    "run_recheck",
    "upsert_store",
    "list_visible_stores",
    "count_visible_stores",
    "search_visible_stores",
    "get_store_admin",
    "list_all_stores_admin",
    "block_store",
    "unblock_store",
]

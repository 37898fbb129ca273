from storefront_radar.catalog.ops.fetcher import StorefrontFetcher
from storefront_radar.catalog.ops.filters import PipelineGate

__all__ = ["StorefrontFetcher", "PipelineGate"]

"""Pricing and clustering engines for data assets."""
__all__ = [
    'PricingEngine', 'PricingOptions', 'PriceQuote', 'calculate_dynamic_price', 'price_portfolio',
    'ClusteringEngine', 'ClusterResult', 'ClusteringReport', 'cluster_assets',
]

_PRICING = ('PricingEngine', 'PricingOptions', 'PriceQuote', 'calculate_dynamic_price', 'price_portfolio')
_CLUSTERING = ('ClusteringEngine', 'ClusterResult', 'ClusteringReport', 'cluster_assets')


def __getattr__(name):
    if name in _PRICING:
        from . import pricing
        return getattr(pricing, name)
    elif name in _CLUSTERING:
        from . import clustering
        return getattr(clustering, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

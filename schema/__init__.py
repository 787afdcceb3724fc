"""Schema definitions for data assets."""
__all__ = ['DataAsset', 'AssetCategory', 'PiiType', 'AnonymizationLevel']

def __getattr__(name):
    if name in __all__:
        from . import asset
        return getattr(asset, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

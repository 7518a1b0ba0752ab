"""Bundled course datasets and the Rdatasets loader."""
from .loaders import as_factor, list_datasets, load_dataset, load_rdataset

__all__ = ["as_factor", "list_datasets", "load_dataset", "load_rdataset"]

"""
IO utilities for dataset descriptors.
"""

from spim_merge.io.dataset_yaml import (
    load_dataset_yaml,
    parse_dataset,
    save_dataset_yaml,
    serialize_merged_dataset,
)

__all__ = [
    "load_dataset_yaml",
    "parse_dataset",
    "save_dataset_yaml",
    "serialize_merged_dataset",
]

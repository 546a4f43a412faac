"""Provisioning runtime: rundev home, registry, downloads and the store."""

from rundev.runtime.download import HttpArchiveProvisioner, Provisioner, extract_archive
from rundev.runtime.home import get_rundev_home
from rundev.runtime.registry import Registry, load_registry, save_registry
from rundev.runtime.store import ProvisionedPaths, ProvisioningStore

__all__ = [
    "HttpArchiveProvisioner",
    "Provisioner",
    "extract_archive",
    "get_rundev_home",
    "Registry",
    "load_registry",
    "save_registry",
    "ProvisionedPaths",
    "ProvisioningStore",
]

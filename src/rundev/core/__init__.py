"""Core helpers shared across rundev components."""

from rundev.core.constants import PACKAGE_JSON
from rundev.core.paths import is_filesystem_root, locate_project_root

__all__ = ["PACKAGE_JSON", "is_filesystem_root", "locate_project_root"]

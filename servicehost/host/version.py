"""Version lookup for hosted types."""

from functools import lru_cache
from importlib import metadata


@lru_cache(maxsize=None)
def package_version(module_name: str) -> str:
    """Installed version of the distribution providing a top-level package.

    Resolved once per package for the life of the process. Empty if unknown.
    """
    top_level = module_name.split(".")[0]
    for dist_name in metadata.packages_distributions().get(top_level, []):
        try:
            return metadata.version(dist_name)
        except metadata.PackageNotFoundError:
            continue
    return ""


def version_of(cls: type) -> str:
    """Version of the package a class is defined in."""
    return package_version(cls.__module__)

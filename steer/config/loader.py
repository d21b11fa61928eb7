"""Configuration loading by URI scheme.

``file://`` URIs (and bare paths) are read with ConfigFileParser. Other
schemes are looked up in the loader registry.
"""

import logging
from urllib.parse import unquote, urlsplit

from steer.config.parser import ConfigFileParser
from steer.errors import ConfigLoadError, UnknownExtensionError
from steer.models import Configuration
from steer.registry import Registry

logger = logging.getLogger(__name__)


def uri_scheme(uri: str) -> str:
    """Scheme of a URI; bare paths count as ``file``."""
    scheme = urlsplit(uri).scheme
    # Single letters are drive letters, not schemes
    if len(scheme) <= 1:
        return "file"
    return scheme.lower()


def load_file(uri: str) -> Configuration:
    """Load a configuration file from a ``file://`` URI or bare path.

    Raises:
        ConfigLoadError: If the file is missing or malformed
    """
    parts = urlsplit(uri)
    path = unquote(parts.netloc + parts.path) if parts.scheme == "file" else uri
    if not path:
        raise ConfigLoadError(f"No path in configuration URI: {uri}")
    return ConfigFileParser(path).parse()


def load_configuration(uri: str, loaders: Registry) -> Configuration:
    """Resolve a configuration URI through the loader registry.

    Args:
        uri: Configuration URI (``file:///etc/steer.conf``, ``/etc/steer.conf``)
        loaders: Loader registry keyed by scheme

    Returns:
        Loaded configuration

    Raises:
        ConfigLoadError: If no loader handles the scheme or the loader fails
    """
    scheme = uri_scheme(uri)
    try:
        loader = loaders.lookup(scheme)
    except UnknownExtensionError as e:
        raise ConfigLoadError(f"Cannot load configuration {uri}: {e}") from e

    logger.debug("Loading configuration %s with %s loader", uri, scheme)
    try:
        return loader(uri)
    except ConfigLoadError:
        raise
    except Exception as e:
        raise ConfigLoadError(f"Cannot load configuration {uri}: {e}") from e


def register_builtin_loaders(loaders: Registry) -> None:
    loaders.register("file", load_file)

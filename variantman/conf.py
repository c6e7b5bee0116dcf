"""
Variantman Settings.

Supports two formats (dict takes priority):

    # Option 1: Dict
    VARIANTMAN = {
        "CATALOG_BACKEND": "variantman.adapters.memory.InMemoryCatalogBackend",
        "REGENERATE_DELAY": 0.5,
    }

    # Option 2: Flat
    VARIANTMAN_CATALOG_BACKEND = "variantman.adapters.memory.InMemoryCatalogBackend"
    VARIANTMAN_REGENERATE_DELAY = 0.5

All settings have sensible defaults, zero configuration required.
"""

import logging
import threading

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


# ── Defaults ──

DEFAULTS = {
    "CATALOG_BACKEND": "variantman.adapters.orm.OrmCatalogBackend",
    "REGENERATE_DELAY": 0.3,
    "SCHEDULER": None,
}


# ── Accessors ──

_sentinel = object()


def get_setting(name, default=_sentinel):
    """
    Get a variantman setting.

    Looks up in order:
    1. VARIANTMAN dict (e.g. VARIANTMAN = {"CATALOG_BACKEND": "..."})
    2. Flat setting (e.g. VARIANTMAN_CATALOG_BACKEND = "...")
    3. DEFAULTS
    """
    variantman_dict = getattr(settings, "VARIANTMAN", {})
    if name in variantman_dict:
        return variantman_dict[name]

    flat_value = getattr(settings, f"VARIANTMAN_{name}", _sentinel)
    if flat_value is not _sentinel:
        return flat_value

    if default is not _sentinel:
        return default

    return DEFAULTS.get(name)


def get_regenerate_delay() -> float:
    """Debounce delay (seconds) for automatic code regeneration."""
    return float(get_setting("REGENERATE_DELAY"))


def get_scheduler():
    """
    Return a new scheduler instance for a wizard session.

    SCHEDULER is a dotted path to a class; None means ImmediateScheduler.
    """
    from variantman.scheduling import ImmediateScheduler

    path = get_setting("SCHEDULER")
    if not path:
        return ImmediateScheduler()
    return import_string(path)()


_catalog_backend_lock = threading.Lock()
_catalog_backend_instance = None


def get_catalog_backend():
    """
    Return the configured catalog backend instance.

    The backend implements CatalogBackend (variants, attributes, verification).

    Raises:
        ImproperlyConfigured: If CATALOG_BACKEND is empty or cannot be imported
    """
    global _catalog_backend_instance

    if _catalog_backend_instance is None:
        with _catalog_backend_lock:
            if _catalog_backend_instance is None:  # double-checked
                path = get_setting("CATALOG_BACKEND")
                if not path:
                    raise ImproperlyConfigured(
                        "VARIANTMAN['CATALOG_BACKEND'] must be configured. "
                        "Example: 'variantman.adapters.orm.OrmCatalogBackend'"
                    )

                try:
                    backend_class = import_string(path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import catalog backend '{path}': {e}"
                    ) from e

                _catalog_backend_instance = backend_class()
                logger.debug("Loaded catalog backend: %s", path)

    return _catalog_backend_instance


def reset_catalog_backend() -> None:
    """Reset singleton (for tests)."""
    global _catalog_backend_instance
    _catalog_backend_instance = None

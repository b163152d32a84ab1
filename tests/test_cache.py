"""Tests for the reference data cache."""
from unittest.mock import MagicMock

from ironload.cache import ReferenceDataCache


def test_loader_called_once_until_invalidated():
    cache = ReferenceDataCache()
    loader = MagicMock(return_value={'bench': object()})

    first = cache.get_catalog(loader)
    second = cache.get_catalog(loader)

    assert first is second
    assert loader.call_count == 1
    assert (cache.hits, cache.misses) == (1, 1)

    cache.invalidate()
    cache.get_catalog(loader)
    assert loader.call_count == 2
    assert cache.misses == 2


def test_loader_failure_is_not_cached():
    cache = ReferenceDataCache()
    loader = MagicMock(side_effect=[RuntimeError("down"), {}])

    try:
        cache.get_catalog(loader)
    except RuntimeError:
        pass
    assert cache.get_catalog(loader) == {}
    assert loader.call_count == 2

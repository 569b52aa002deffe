"""POS adapters - Square, Clover and an in-memory mock."""

from typing import Any

from siplocal_schemas import POSProvider

from apps.web.pos.adapters.base import POSAdapter
from apps.web.pos.adapters.clover import CloverAdapter
from apps.web.pos.adapters.mock import MockPOSAdapter
from apps.web.pos.adapters.square import SquareAdapter

ADAPTERS: dict[POSProvider, type] = {
    POSProvider.SQUARE: SquareAdapter,
    POSProvider.CLOVER: CloverAdapter,
    POSProvider.MOCK: MockPOSAdapter,
}


def get_adapter(provider: POSProvider | str, **kwargs: Any) -> POSAdapter:
    """
    Build the adapter for a merchant's POS.

    Services go through pos_adapter_for(), which fills in the sandbox flag
    from settings; call this directly only in tests and scripts.

    Args:
        provider: The merchant's POS provider.
        **kwargs: Constructor arguments (sandbox=True, http_client=...).

    Raises:
        ValueError: If the provider is not one we integrate with.
    """
    try:
        adapter_class = ADAPTERS[POSProvider(provider)]
    except ValueError as e:
        supported = ", ".join(p.value for p in POSProvider)
        raise ValueError(
            f"Unsupported POS provider: {provider}. Supported: {supported}"
        ) from e
    adapter: POSAdapter = adapter_class(**kwargs)
    return adapter


__all__ = [
    "CloverAdapter",
    "MockPOSAdapter",
    "POSAdapter",
    "SquareAdapter",
    "get_adapter",
]

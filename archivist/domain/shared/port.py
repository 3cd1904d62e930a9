from typing import Protocol


class Port(Protocol):
    """Marker base for domain ports (interfaces implemented by infrastructure adapters)."""

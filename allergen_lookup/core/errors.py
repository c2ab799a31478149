"""
Exception types raised across the lookup cascade.

"Nothing found" is never an exception: stores return None for a miss.
These types are reserved for faults that callers must see.
"""


class AllergenLookupError(RuntimeError):
    """Base class for all lookup service errors."""


class StorageFault(AllergenLookupError):
    """Raised when a backing store (reference table or response cache) fails."""


class SynthesisTransportFault(AllergenLookupError):
    """Raised when the search or answer-synthesis pipeline itself fails."""

"""Read-only selectors over ledger state."""

from token_kernel.selectors.base import BaseSelector
from token_kernel.selectors.token_selector import TokenSelector

__all__ = ["BaseSelector", "TokenSelector"]

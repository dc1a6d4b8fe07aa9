"""
NoteForge Backend — Abstract Provider Client Interface
========================================================

What:  Abstract base class for a client bound to exactly one credential.
Why:   The credential manager, dispatcher and tests only depend on this
       contract; GeminiClient is the single production implementation.
How:   Concrete clients implement generate(). They are immutable: a client is
       never re-pointed at another credential, it is discarded and rebuilt.
"""

from abc import ABC, abstractmethod
from typing import Callable


class ProviderClient(ABC):
    """
    Ephemeral handle for issuing generation calls with one credential.

    Contract:
        - generate() sends one prompt and returns the reply text
        - Returns an empty string when the provider replies with no text
        - Raw provider exceptions propagate unchanged; classification is
          the caller's job (see error_classifier)
    """

    model: str

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Send a single-turn prompt and return the free-form reply text.

        Args:
            prompt: Fully constructed prompt text.

        Returns:
            The reply text, stripped. Never None.
        """
        ...

    async def close(self) -> None:
        """Release transport resources. Safe to call more than once."""
        return None


# Builds a client for a credential; injected into CredentialManager
ClientFactory = Callable[[str], ProviderClient]

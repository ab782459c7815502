"""Configuration models for agentstage.

LoopConfig holds the loop and ledger budget ceilings.
StorageConfig holds persistence settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

DEFAULT_MAX_CONTINUES = 3
DEFAULT_MAX_ITERATIONS_PER_RUN = 10
DEFAULT_MAX_TOTAL_TOKENS = 4_000_000
DEFAULT_MAX_ATTEMPTS_PER_FILE = 2
DEFAULT_MAX_TOTAL_CHUNKS = 10


@dataclass
class LoopConfig:
    """Budget ceilings for an agent loop step.

    Mutable dataclass -- hosts may adjust settings between steps.

    Attributes:
        max_continues: User-triggered resumes allowed per step.
        max_iterations_per_run: Iterations in one execution burst.
        max_total_tokens: Absolute input+output token ceiling.
        max_attempts_per_file: Edit attempts per target file in a
            chunked edit step.
        max_total_chunks: Total edit chunks per step.
    """

    max_continues: int = DEFAULT_MAX_CONTINUES
    max_iterations_per_run: int = DEFAULT_MAX_ITERATIONS_PER_RUN
    max_total_tokens: int = DEFAULT_MAX_TOTAL_TOKENS
    max_attempts_per_file: int = DEFAULT_MAX_ATTEMPTS_PER_FILE
    max_total_chunks: int = DEFAULT_MAX_TOTAL_CHUNKS

    @property
    def max_total_iterations(self) -> int:
        """Hard iteration ceiling across all continues."""
        return (self.max_continues + 1) * self.max_iterations_per_run


class StorageConfig(BaseModel):
    """Persistence settings for sessions, ledgers and events."""

    db_path: str = ":memory:"
    db_url: Optional[str] = None

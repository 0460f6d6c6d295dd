"""Benchmark session: one audit log shared by consecutive runs."""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field

from benchmarkify.config import ControllerConfig

from .audit import AuditLog

_TAG_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_tag(
    prefix: str = "benchmarkify",
    *,
    now_ms: int | None = None,
    rng: random.Random | None = None,
) -> str:
    """Generate a unique session tag like ``benchmarkify-1700000000000-k3x9q2``."""
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join((rng or random).choices(_TAG_ALPHABET, k=6))
    return f"{prefix}-{timestamp}-{suffix}"


@dataclass
class BenchmarkSession:
    """State that outlives a single run.

    Products created by a create run are registered in the session's
    audit log, so a following update or delete run in the same session
    can target them without waiting for search indexing to catch up.
    """

    tag: str = field(default_factory=generate_session_tag)
    controller_config: ControllerConfig | None = None
    audit: AuditLog = field(init=False)

    def __post_init__(self) -> None:
        self.audit = AuditLog(self.tag, self.controller_config)

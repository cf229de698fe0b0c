"""
Structural diff of two snapshots.

Compares prompt sets by identifier and reports removals, additions,
content changes and enabled-flag changes. The comparison is pure and
deterministic.

Ordering of the result:
- one pass over A's identifiers, in A's order (removed, content and
  enabled changes)
- then identifiers present only in B, in B's order (additions)
"""

from __future__ import annotations

import logging
from typing import List, Optional

from abtest.app.schemas.changes import (
    AddedChange,
    ChangeRecord,
    ContentChange,
    EnabledChange,
    RemovedChange,
)
from abtest.app.schemas.snapshot import Snapshot

logger = logging.getLogger(__name__)


def diff_snapshots(
    snapshot_a: Optional[Snapshot],
    snapshot_b: Optional[Snapshot],
) -> List[ChangeRecord]:
    """
    Return the typed differences between two snapshots.

    IMPORTANT:
    - A missing input yields an empty list. Callers MUST NOT read that
      as equality.
    - Content is compared by exact string equality, no normalization.
    - One identifier may produce both a content and an enabled change.
    """
    differences: List[ChangeRecord] = []

    if snapshot_a is None or snapshot_b is None:
        logger.debug("Comparison skipped: snapshot missing")
        return differences

    prompts_a = snapshot_a.prompt_map()
    prompts_b = snapshot_b.prompt_map()

    for identifier, prompt_a in prompts_a.items():
        prompt_b = prompts_b.get(identifier)

        if prompt_b is None:
            differences.append(
                RemovedChange(identifier=identifier, name=prompt_a.name)
            )
            continue

        if prompt_a.content != prompt_b.content:
            differences.append(
                ContentChange(
                    identifier=identifier,
                    name=prompt_a.name,
                    content_a=prompt_a.content,
                    content_b=prompt_b.content,
                )
            )

        # First ordering list containing the identifier decides
        enabled_a = snapshot_a.resolve_enabled(identifier)
        enabled_b = snapshot_b.resolve_enabled(identifier)

        if enabled_a != enabled_b:
            differences.append(
                EnabledChange(
                    identifier=identifier,
                    name=prompt_a.name,
                    enabled_a=enabled_a,
                    enabled_b=enabled_b,
                )
            )

    for identifier, prompt_b in prompts_b.items():
        if identifier not in prompts_a:
            differences.append(
                AddedChange(identifier=identifier, name=prompt_b.name)
            )

    return differences

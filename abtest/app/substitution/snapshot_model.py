"""
Capture and materialization of snapshots.

These two functions are the only bridge between immutable snapshots and
the host's mutable prompt configuration. Both copy: a capture never
aliases live state, and a materialization never hands the host a
reference into the snapshot.
"""

from __future__ import annotations

import copy
import logging
import time
from datetime import datetime
from typing import Callable, Optional

from abtest.app.schemas.snapshot import Snapshot
from abtest.app.substitution.collaborators import ConfigurationStore

logger = logging.getLogger(__name__)

DEFAULT_PRESET_LABEL = "Unknown Preset"

Clock = Callable[[], float]


def epoch_millis(clock: Optional[Clock] = None) -> int:
    return int((clock or time.time)() * 1000)


def display_time(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime(
        "%Y-%m-%d %H:%M:%S"
    )


def capture(
    config_store: Optional[ConfigurationStore],
    *,
    clock: Optional[Clock] = None,
    default_preset_label: str = DEFAULT_PRESET_LABEL,
) -> Optional[Snapshot]:
    """
    Capture the live configuration as a transient snapshot.

    Returns None when the configuration store is unavailable. The
    snapshot is named "[<preset>] <capture time>".
    """
    if config_store is None:
        logger.warning("Capture skipped: configuration store unavailable")
        return None

    live = config_store.get_current()
    if live is None:
        logger.warning("Capture skipped: configuration not initialized")
        return None

    prompts = copy.deepcopy(live.prompts)
    prompt_order = copy.deepcopy(live.prompt_order)
    preset_name = live.preset_label or default_preset_label
    timestamp = epoch_millis(clock)

    snapshot = Snapshot(
        prompts=prompts,
        prompt_order=prompt_order,
        preset_name=preset_name,
        timestamp=timestamp,
        name=f"[{preset_name}] {display_time(timestamp)}",
    )

    return snapshot.model_copy(
        update={
            "enabled_count": Snapshot.count_enabled(
                snapshot.prompts, snapshot.prompt_order
            )
        }
    )


def materialize(
    config_store: Optional[ConfigurationStore],
    snapshot: Optional[Snapshot],
) -> bool:
    """
    Write a copy of `snapshot` into the live configuration.

    Returns False when either the store or the snapshot is absent.
    """
    if config_store is None or snapshot is None:
        logger.warning(
            "Materialize skipped: %s unavailable",
            "snapshot" if config_store is not None else "configuration store",
        )
        return False

    config_store.replace(
        snapshot.host_prompts(),
        snapshot.host_prompt_order(),
    )

    logger.debug(
        "Materialized snapshot '%s' (%d prompts)",
        snapshot.name,
        len(snapshot.prompts),
    )
    return True

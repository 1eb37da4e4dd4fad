"""Deterministic, sticky variant selection.

Assignment is hash-based: given the same (experiment_id, viewer_id) pair,
the viewer always gets the same variant. The hash output is mapped onto the
challengers' percentage splits; whatever share is left belongs to control.

A previously stored choice wins over the hash, and a forced variant (preview
links) wins over both. The result is the immutable runtime state that block
loading reads for the rest of the page view.
"""

import hashlib
import logging
from typing import Protocol

from src.experimentation.blocks import block_name_of
from src.experimentation.config import DEFAULT_OPTIONS, ExperimentOptions
from src.experimentation.experiment import CONTROL, STATUS_ACTIVE, ExperimentConfig, ExperimentState

logger = logging.getLogger(__name__)


class VariantStore(Protocol):
    def get(self, experiment_id: str) -> str | None: ...

    def set(self, experiment_id: str, variant: str) -> None: ...


class InMemoryVariantStore:
    """Remembers chosen variants per experiment under one storage key."""

    def __init__(self, options: ExperimentOptions = DEFAULT_OPTIONS):
        self.key = options.store_key
        self._data: dict[str, dict[str, str]] = {self.key: {}}

    def get(self, experiment_id: str) -> str | None:
        return self._data[self.key].get(experiment_id)

    def set(self, experiment_id: str, variant: str) -> None:
        self._data[self.key][experiment_id] = variant


def _weight(split: str) -> float:
    try:
        weight = float(split)
    except (TypeError, ValueError):
        return 0.0
    return max(weight, 0.0)


def assign_variant(config: ExperimentConfig, viewer_id: str) -> str:
    """Assign a viewer to a variant deterministically.

    Uses SHA-256 hash of (experiment_id + viewer_id) to produce a stable
    bucket value in [0.0, 1.0), then walks the challengers' cumulative
    splits. Buckets past the last challenger fall to control.
    """
    hash_input = f"{config.id}:{viewer_id}"
    hash_bytes = hashlib.sha256(hash_input.encode()).digest()
    # Use first 8 bytes as unsigned int, normalize to [0, 1)
    bucket = int.from_bytes(hash_bytes[:8], "big") / (2**64)

    cumulative = 0.0
    for name in config.challengers:
        cumulative += _weight(config.variants[name].percentage_split)
        if bucket < cumulative:
            return name
    return CONTROL


def select_variant(
    config: ExperimentConfig,
    viewer_id: str,
    store: VariantStore | None = None,
    forced_variant: str | None = None,
    preferred_variant: str | None = None,
) -> ExperimentState:
    """Select the variant for this page view and build the runtime state.

    Precedence: a forced variant (which also makes the experiment run), then
    the variant the page itself names, then the stored choice, then the hash.
    """
    run = config.status == STATUS_ACTIVE

    for name in (forced_variant, preferred_variant):
        if name is not None and name not in config.variants:
            logger.warning(f"Ignoring unknown variant {name} for experiment {config.id}")

    if forced_variant in config.variants:
        selected = forced_variant
        run = True
    elif preferred_variant in config.variants:
        selected = preferred_variant
    else:
        stored = store.get(config.id) if store else None
        if stored in config.variants:
            selected = stored
        else:
            selected = assign_variant(config, viewer_id)
            if store:
                store.set(config.id, selected)

    control = config.variants[config.variant_names[0]]
    logger.debug(f"Experiment {config.id}: variant {selected} (run={run})")
    return ExperimentState(
        run=run,
        selected_variant=selected,
        variant_names=list(config.variant_names),
        blocks=[block_name_of(entry) for entry in control.blocks],
        variants=dict(config.variants),
    )

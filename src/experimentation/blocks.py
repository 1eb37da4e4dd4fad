"""Block config patching for the selected variant.

A block is swapped when the control variant lists it and the selected
challenger lists an override at the same position:

    control:      blocks = ["hero", "toc"]
    challenger-1: blocks = ["hero-v2", "https://other.site"]

Loading ``toc`` under challenger-1 then pulls its code and styles from
``https://other.site/blocks/toc``. In every other case the block config is
returned untouched.
"""

import logging

from src.experimentation.experiment import ExperimentState
from src.experimentation.urls import resolve

logger = logging.getLogger(__name__)


def block_name_of(entry: str) -> str:
    """Return the block name of a block entry, i.e. the last path segment."""
    return entry.strip().rstrip("/").rsplit("/", 1)[-1]


def find_override(block_name: str, state: ExperimentState | None) -> str | None:
    """Return the override entry for ``block_name`` in the selected variant, if any."""
    if state is None or state.run is not True:
        return None
    if not state.variant_names or state.is_control:
        return None
    if block_name not in state.blocks:
        return None

    variant = state.variants.get(state.selected_variant)
    if variant is None or not variant.blocks:
        return None

    control = state.variants.get(state.variant_names[0])
    control_names = [block_name_of(entry) for entry in control.blocks] if control else []
    if block_name not in control_names:
        return None

    index = control_names.index(block_name)
    if index >= len(variant.blocks):
        return None
    return variant.blocks[index]


def patch_block_config(
    config: dict,
    state: ExperimentState | None,
    origin: str = "",
    code_base_path: str = "",
) -> dict:
    """Point a block config at the selected variant's code and styles.

    Returns the config unchanged when the block is not overridden.
    """
    block_name = config.get("blockName")
    if not block_name:
        return config

    override = find_override(block_name, state)
    if override is None:
        return config

    base = resolve(code_base_path, override, origin, block_name)
    logger.debug(f"Block {block_name} served from {base} for variant {state.selected_variant}")
    return {
        **config,
        "cssPath": f"{base}/{block_name}.css",
        "jsPath": f"{base}/{block_name}.js",
    }

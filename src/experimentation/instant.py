"""Instant experiments declared inline, without a manifest.

A page tagged ``experiment: foo:challenger-1:https://site/a, https://site/b``
runs an experiment whose challengers are the listed pages. The config is
synthesized locally; no fetch is involved.
"""

from src.experimentation.experiment import CONTROL, STATUS_ACTIVE, ExperimentConfig, Variant
from src.experimentation.urls import path_of


def build_instant_config(experiment_id: str, variant_urls: str, current_path: str = "/") -> ExperimentConfig:
    """Build the config of an instant experiment from a comma-separated URL list.

    Each challenger gets an even share of 1 / (challengers + 1), rounded to two
    decimals; whatever the rounding leaves over stays with control.
    """
    pages = [path_of(token.strip()) for token in variant_urls.split(",") if token.strip()]
    split = f"{1 / (len(pages) + 1):.2f}"

    variant_names = [CONTROL]
    variants = {
        CONTROL: Variant(label="Control", percentage_split="", pages=[current_path], blocks=[]),
    }
    for i, page in enumerate(pages, start=1):
        name = f"challenger-{i}"
        variant_names.append(name)
        variants[name] = Variant(label=f"Challenger {i}", percentage_split=split, pages=[page])

    return ExperimentConfig(
        id=experiment_id,
        label=f"Instant Experiment: {experiment_id}",
        audience="",
        status=STATUS_ACTIVE,
        variant_names=variant_names,
        variants=variants,
    )

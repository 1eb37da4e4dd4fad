"""Experiment definitions and runtime state.

An experiment config is produced either from a manifest or from an inline
instant declaration. It always lists the control variant first, followed by
the challengers in declaration order.

The runtime state is what a page load ends up with once a variant has been
selected; block loading reads it but never modifies it.
"""

import re
from dataclasses import dataclass, field

CONTROL = "control"
STATUS_ACTIVE = "Active"
STATUS_INACTIVE = "Inactive"


def to_class_name(value: str) -> str:
    """Convert a label like ``"Challenger 1"`` to an id like ``"challenger-1"``."""
    name = re.sub(r"[^0-9a-z]", "-", str(value).lower())
    name = re.sub(r"-+", "-", name)
    return name.strip("-")


@dataclass(frozen=True)
class Variant:
    label: str
    percentage_split: str = ""  # Decimal string, "" for control
    pages: list[str] = field(default_factory=list)
    blocks: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "percentageSplit": self.percentage_split,
            "pages": list(self.pages),
            "blocks": list(self.blocks),
        }


@dataclass(frozen=True)
class ExperimentConfig:
    id: str
    label: str
    variant_names: list[str]
    variants: dict[str, Variant]
    audience: str = ""
    status: str = STATUS_ACTIVE
    experiment_name: str | None = None
    base_path: str | None = None
    manifest: str | None = None

    def __post_init__(self):
        if not self.variant_names or self.variant_names[0] != CONTROL:
            raise ValueError(f"First variant must be '{CONTROL}', got {self.variant_names}")
        if len(self.variant_names) != len(set(self.variant_names)):
            raise ValueError("Variant names must be unique")
        if set(self.variant_names) != set(self.variants):
            raise ValueError("Variants must match variant names")
        if self.status not in (STATUS_ACTIVE, STATUS_INACTIVE):
            raise ValueError(f"Invalid status: {self.status}")

    @property
    def challengers(self) -> list[str]:
        return self.variant_names[1:]

    def to_dict(self) -> dict:
        """Render the config document with camelCase keys, omitting unset fields."""
        doc = {
            "id": self.id,
            "label": self.label,
            "experimentName": self.experiment_name,
            "audience": self.audience,
            "status": self.status,
            "basePath": self.base_path,
            "manifest": self.manifest,
            "variantNames": list(self.variant_names),
            "variants": {name: self.variants[name].to_dict() for name in self.variant_names},
        }
        return {key: value for key, value in doc.items() if value is not None}


@dataclass(frozen=True)
class ExperimentState:
    """Variant selection for the current page view."""

    run: bool
    selected_variant: str
    variant_names: list[str] = field(default_factory=list)
    blocks: list[str] = field(default_factory=list)
    variants: dict[str, Variant] = field(default_factory=dict)

    @property
    def is_control(self) -> bool:
        return bool(self.variant_names) and self.selected_variant == self.variant_names[0]

"""Tests for deterministic, sticky variant selection."""

from src.experimentation.assignment import InMemoryVariantStore, assign_variant, select_variant
from src.experimentation.config import ExperimentOptions
from src.experimentation.experiment import ExperimentConfig, Variant
from src.experimentation.instant import build_instant_config


def _config(status="Active", splits=("0.5",)):
    names = ["control"] + [f"challenger-{i}" for i in range(1, len(splits) + 1)]
    variants = {"control": Variant(label="Control", blocks=["hero", "blocks/toc"])}
    for name, split in zip(names[1:], splits):
        variants[name] = Variant(label=name, percentage_split=split, blocks=["hero-v2"])
    return ExperimentConfig(id="exp_toc", label="ToC", status=status, variant_names=names, variants=variants)


class TestAssignVariant:
    def test_deterministic(self):
        """Same viewer + experiment always gets the same variant."""
        config = _config()
        assert assign_variant(config, "viewer_001") == assign_variant(config, "viewer_001")

    def test_different_viewers_can_get_different_variants(self):
        config = _config()
        variants = {assign_variant(config, f"viewer_{i}") for i in range(100)}
        assert variants == {"control", "challenger-1"}

    def test_roughly_even_split(self):
        config = _config()
        assignments = [assign_variant(config, f"viewer_{i}") for i in range(10000)]
        control_count = assignments.count("control")
        # Should be within 45%-55% for 10k viewers
        assert 4500 <= control_count <= 5500

    def test_rounding_remainder_goes_to_control(self):
        config = build_instant_config("exp", "/a, /b")
        assignments = [assign_variant(config, f"viewer_{i}") for i in range(10000)]
        # Challengers get 0.33 each, control keeps 0.34
        assert 3000 <= assignments.count("control") <= 3800
        assert 2900 <= assignments.count("challenger-2") <= 3700

    def test_unparsable_split_counts_as_zero(self):
        config = _config(splits=("lots",))
        assert {assign_variant(config, f"viewer_{i}") for i in range(200)} == {"control"}

    def test_control_only(self):
        config = build_instant_config("exp", "")
        assert assign_variant(config, "viewer_001") == "control"


class TestSelectVariant:
    def test_state_from_config(self):
        state = select_variant(_config(), "viewer_001")
        assert state.run is True
        assert state.variant_names == ["control", "challenger-1"]
        assert state.blocks == ["hero", "toc"]
        assert state.selected_variant in ("control", "challenger-1")

    def test_inactive_does_not_run(self):
        assert select_variant(_config(status="Inactive"), "viewer_001").run is False

    def test_forced_variant_wins(self):
        store = InMemoryVariantStore()
        store.set("exp_toc", "control")
        state = select_variant(_config(status="Inactive"), "viewer_001", store, "challenger-1")
        assert state.selected_variant == "challenger-1"
        assert state.run is True

    def test_unknown_forced_variant_ignored(self):
        config = _config()
        state = select_variant(config, "viewer_001", forced_variant="challenger-9")
        assert state.selected_variant == assign_variant(config, "viewer_001")

    def test_preferred_variant_wins_over_store(self):
        store = InMemoryVariantStore()
        store.set("exp_toc", "control")
        state = select_variant(_config(status="Inactive"), "viewer_001", store, preferred_variant="challenger-1")
        assert state.selected_variant == "challenger-1"
        assert state.run is False
        assert store.get("exp_toc") == "control"

    def test_forced_variant_wins_over_preferred(self):
        state = select_variant(_config(), "viewer_001", forced_variant="control", preferred_variant="challenger-1")
        assert state.selected_variant == "control"

    def test_unknown_preferred_variant_ignored(self):
        config = _config()
        state = select_variant(config, "viewer_001", preferred_variant="challenger-9")
        assert state.selected_variant == assign_variant(config, "viewer_001")

    def test_stored_variant_is_sticky(self):
        config = _config()
        store = InMemoryVariantStore()
        first = select_variant(config, "viewer_001", store).selected_variant
        assert store.get("exp_toc") == first

        other = "control" if first == "challenger-1" else "challenger-1"
        store.set("exp_toc", other)
        assert select_variant(config, "viewer_001", store).selected_variant == other

    def test_stale_stored_variant_reassigned(self):
        config = _config()
        store = InMemoryVariantStore()
        store.set("exp_toc", "challenger-7")
        state = select_variant(config, "viewer_001", store)
        assert state.selected_variant == assign_variant(config, "viewer_001")
        assert store.get("exp_toc") == state.selected_variant


class TestInMemoryVariantStore:
    def test_namespaced_by_store_key(self):
        store = InMemoryVariantStore(ExperimentOptions(store_key="custom"))
        store.set("exp", "control")
        assert store.key == "custom"
        assert store.get("exp") == "control"
        assert store.get("missing") is None

"""Experiment discovery for a page view.

The page declares its experiment in metadata, in one of three forms:

    foo                          manifest experiment "foo"
    foo:challenger-1             ... with a preferred variant
    foo:challenger-1:url1,url2   instant experiment, challengers are the URLs

Bots never enter experiments. Reading metadata and the user agent is left
to the host, which passes them in.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable
from urllib.parse import parse_qs

from src.experimentation.assignment import VariantStore, select_variant
from src.experimentation.config import DEFAULT_OPTIONS, ExperimentOptions
from src.experimentation.experiment import ExperimentConfig, ExperimentState, to_class_name
from src.experimentation.instant import build_instant_config
from src.experimentation.manifest import fetch_experiment_config

logger = logging.getLogger(__name__)

BOT_PATTERN = re.compile(r"bot|crawl|spider", re.IGNORECASE)


@dataclass(frozen=True)
class ExperimentTag:
    experiment_id: str
    variant: str | None = None
    urls: str | None = None

    @property
    def is_instant(self) -> bool:
        return bool(self.urls)


def is_bot(user_agent: str) -> bool:
    return bool(BOT_PATTERN.search(user_agent or ""))


def parse_experiment_tag(value: str) -> ExperimentTag | None:
    """Parse an ``id[:variant[:urls]]`` metadata value."""
    if not value or not value.strip():
        return None
    # URLs contain colons themselves, so only split off the first two fields
    parts = value.strip().split(":", 2)
    experiment_id = to_class_name(parts[0])
    if not experiment_id:
        return None
    variant = to_class_name(parts[1]) if len(parts) > 1 and parts[1].strip() else None
    urls = parts[2].strip() if len(parts) > 2 and parts[2].strip() else None
    return ExperimentTag(experiment_id=experiment_id, variant=variant, urls=urls)


def get_experiment(
    get_metadata: Callable[[str], str],
    options: ExperimentOptions = DEFAULT_OPTIONS,
    user_agent: str = "",
) -> ExperimentTag | None:
    """Return the experiment declared on the page, or None for bots and plain pages."""
    if is_bot(user_agent):
        logger.debug("Skipping experiment for bot client")
        return None
    return parse_experiment_tag(get_metadata(options.meta_tag) or "")


def parse_forced_variant(query: str, options: ExperimentOptions = DEFAULT_OPTIONS) -> tuple[str, str] | None:
    """Read a ``?experiment=<id>/<variant>`` override from a query string."""
    values = parse_qs(query.lstrip("?")).get(options.query_parameter)
    if not values:
        return None
    experiment_id, _, variant = values[0].partition("/")
    if not experiment_id or not variant:
        return None
    return to_class_name(experiment_id), to_class_name(variant)


def resolve_experiment_config(
    tag: ExperimentTag | None,
    options: ExperimentOptions = DEFAULT_OPTIONS,
    origin: str = "",
    current_path: str = "/",
    fetch: Callable[..., ExperimentConfig | None] = fetch_experiment_config,
) -> ExperimentConfig | None:
    """Resolve the config of the declared experiment.

    Instant tags are built locally; anything else loads the manifest. Any
    failure resolves to None so the page renders without the experiment.
    """
    if tag is None:
        return None
    if tag.is_instant:
        config = build_instant_config(tag.experiment_id, tag.urls, current_path)
        if not config.challengers:
            logger.debug(f"Instant experiment {tag.experiment_id} declares no usable pages")
            return None
        return config
    try:
        return fetch(tag.experiment_id, options, origin)
    except Exception as e:
        logger.warning(f"Could not load experiment {tag.experiment_id}: {e}")
        return None


def run_experiment(
    get_metadata: Callable[[str], str],
    viewer_id: str,
    options: ExperimentOptions = DEFAULT_OPTIONS,
    origin: str = "",
    current_path: str = "/",
    query: str = "",
    user_agent: str = "",
    store: VariantStore | None = None,
    fetch: Callable[..., ExperimentConfig | None] = fetch_experiment_config,
) -> ExperimentState | None:
    """Resolve the page's experiment and select the viewer's variant.

    A ``?experiment=<id>/<variant>`` override for this experiment wins over
    the variant named in the page metadata. Returns None when the page runs
    no experiment.
    """
    tag = get_experiment(get_metadata, options, user_agent)
    config = resolve_experiment_config(tag, options, origin, current_path, fetch)
    if config is None:
        return None

    forced = parse_forced_variant(query, options)
    forced_variant = forced[1] if forced and forced[0] == config.id else None
    return select_variant(
        config,
        viewer_id,
        store,
        forced_variant=forced_variant,
        preferred_variant=tag.variant,
    )

"""Plugin options for experiment resolution.

Defaults mirror the conventions of a franklin-style site:
  /experiments/<id>/manifest.json holds each experiment manifest,
  <meta name="experiment"> declares the experiment on a page,
  ?experiment=<id>/<variant> forces a variant for previews.

Hosts override individual values with ``dataclasses.replace``.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ExperimentOptions:
    # Folder holding one sub-folder per experiment
    base_path: str = "/experiments"
    # Manifest file name inside each experiment folder
    config_file: str = "manifest.json"
    # Page metadata name that declares the experiment
    meta_tag: str = "experiment"
    # Query parameter used to force a variant
    query_parameter: str = "experiment"
    # Storage namespace for sticky assignments
    store_key: str = "hlx-experiments"

    # Seconds before a manifest fetch is abandoned
    request_timeout: float = 5.0

    def as_dict(self) -> dict[str, str]:
        """Return the plugin options document (camelCase keys)."""
        return {
            "basePath": self.base_path,
            "configFile": self.config_file,
            "metaTag": self.meta_tag,
            "queryParameter": self.query_parameter,
            "storeKey": self.store_key,
        }


DEFAULT_OPTIONS = ExperimentOptions()

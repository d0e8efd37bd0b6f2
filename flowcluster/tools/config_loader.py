"""
Configuration loader for clustering profiles and environment variables.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..clustering.clusterer import ClusteringOptions
from ..errors import ConfigurationError


class ConfigLoader:
    """Load clustering profiles from YAML files and the environment."""

    CONFIG_DIR = Path(__file__).parent.parent.parent / "configs"
    ENV_VAR = "FLOWCLUSTER_PROFILE"
    DEFAULT_PROFILE = "default"

    @classmethod
    def load_profile(cls, profile_name: str = DEFAULT_PROFILE) -> Dict[str, Any]:
        """
        Load a clustering profile.

        Args:
            profile_name: Name of the profile (default, metro, regional)

        Returns:
            Dictionary with configuration values

        Raises:
            FileNotFoundError: If profile doesn't exist
        """
        profile_path = cls.CONFIG_DIR / f"{profile_name}.yaml"

        if not profile_path.exists():
            available = sorted(f.stem for f in cls.CONFIG_DIR.glob("*.yaml"))
            raise FileNotFoundError(
                f"Profile '{profile_name}' not found. Available profiles: {', '.join(available)}"
            )

        with open(profile_path, "r") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def get_profile_from_env(cls) -> Optional[str]:
        """Get profile name from the FLOWCLUSTER_PROFILE environment variable."""
        return os.getenv(cls.ENV_VAR)

    @classmethod
    def load_default_or_env_profile(cls) -> Dict[str, Any]:
        profile = cls.get_profile_from_env() or cls.DEFAULT_PROFILE
        return cls.load_profile(profile)

    @staticmethod
    def options_from_profile(profile: Dict[str, Any]) -> ClusteringOptions:
        """
        Build ClusteringOptions from a profile's ``clustering`` section.

        Raises:
            ConfigurationError: Unknown keys or invalid values
        """
        section = dict(profile.get("clustering") or {})
        allowed = {"min_zoom", "max_zoom", "radius", "extent", "node_size"}
        unknown = set(section) - allowed
        if unknown:
            raise ConfigurationError(f"Unknown clustering settings: {', '.join(sorted(unknown))}")
        options = ClusteringOptions(**section)
        options.validate()
        return options


def get_clustering_options(profile_name: Optional[str] = None) -> ClusteringOptions:
    """Convenience function to get options for a named (or the current) profile."""
    if profile_name is None:
        profile = ConfigLoader.load_default_or_env_profile()
    else:
        profile = ConfigLoader.load_profile(profile_name)
    return ConfigLoader.options_from_profile(profile)

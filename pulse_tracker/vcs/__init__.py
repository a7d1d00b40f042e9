"""
VCS (Version Control System) abstraction layer for PulseTracker.

Providers fetch pull requests and commits for the metric calculators.
"""

from pulse_tracker.vcs.base import BaseVCSProvider, VCSActivity
from pulse_tracker.vcs.github import GitHubProvider

__all__ = [
    "BaseVCSProvider",
    "VCSActivity",
    "GitHubProvider",
    "get_vcs_provider",
    "register_vcs_provider",
    "list_supported_platforms",
]

# Registry of supported VCS providers
_PROVIDERS: dict[str, type[BaseVCSProvider]] = {
    "github": GitHubProvider,
}


def get_vcs_provider(platform: str = "github", **kwargs) -> BaseVCSProvider:
    """
    Factory function to get VCS provider instance.

    Args:
        platform: VCS platform name. Default: 'github'
        **kwargs: Provider-specific configuration (e.g., token)

    Returns:
        Initialized VCS provider instance

    Raises:
        ValueError: If platform is not supported
    """
    platform_lower = platform.lower()

    if platform_lower not in _PROVIDERS:
        supported = ", ".join(sorted(_PROVIDERS.keys()))
        raise ValueError(
            f"Unsupported VCS platform: {platform}. Supported platforms: {supported}"
        )

    return _PROVIDERS[platform_lower](**kwargs)


def register_vcs_provider(platform: str, provider_class: type[BaseVCSProvider]) -> None:
    """
    Register a custom VCS provider.

    Raises:
        TypeError: If provider_class doesn't inherit from BaseVCSProvider
    """
    if not issubclass(provider_class, BaseVCSProvider):
        raise TypeError(
            f"Provider class must inherit from BaseVCSProvider, "
            f"got {type(provider_class)}"
        )

    _PROVIDERS[platform.lower()] = provider_class


def list_supported_platforms() -> list[str]:
    """List all supported VCS platforms."""
    return sorted(_PROVIDERS.keys())

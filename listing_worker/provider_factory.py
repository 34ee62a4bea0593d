import os

from . import fal
from . import kling

DEFAULT_PROVIDER = os.environ.get("VIDEO_PROVIDER", "fal")

_PROVIDERS = {
    "fal": fal,
    "kling": kling,
}


class ProviderFactory:
    @staticmethod
    def get_provider(name: str = None):
        """
        Return the image-to-video client module for a provider name.
        Each module exposes submit_clip() and get_clip_status().
        """
        key = (name or DEFAULT_PROVIDER or "fal").lower()
        if key not in _PROVIDERS:
            raise ValueError(f"Unknown video provider '{name}'. Expected one of: {', '.join(_PROVIDERS)}")
        return _PROVIDERS[key]

    @staticmethod
    def provider_name(name: str = None) -> str:
        return (name or DEFAULT_PROVIDER or "fal").lower()

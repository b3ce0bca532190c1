"""Remote platform integrations."""

from trackdeck.infrastructure.integrations.platform_sources import (
    DeezerSource,
    SoundCloudSource,
    SpotifySource,
    YouTubeSource,
    build_platform_sources,
)
from trackdeck.infrastructure.integrations.remote_function_client import (
    FunctionResult,
    RemoteFunctionClient,
)

__all__ = [
    "DeezerSource",
    "FunctionResult",
    "RemoteFunctionClient",
    "SoundCloudSource",
    "SpotifySource",
    "YouTubeSource",
    "build_platform_sources",
]

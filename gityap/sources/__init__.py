from .channels import ChannelInfoProvider, FileChannelProvider, StaticChannelProvider
from .github import UpstreamClient, UpstreamResponse

__all__ = [
    "ChannelInfoProvider",
    "FileChannelProvider",
    "StaticChannelProvider",
    "UpstreamClient",
    "UpstreamResponse",
]

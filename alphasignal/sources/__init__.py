"""Post sources: where tracked accounts' statements come from."""

from alphasignal.sources.base import PostSource
from alphasignal.sources.mock import MockPostSource
from alphasignal.sources.twitter_tapi import TwitterApiIoSource

__all__ = ["MockPostSource", "PostSource", "TwitterApiIoSource"]

"""Spotify Now Playing plugin for the FlexBar control deck"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("spotify-flexbar")
except PackageNotFoundError:
    __version__ = "dev"

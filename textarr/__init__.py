"""Textarr: request movies and TV shows for Radarr and Sonarr by chat."""

__version__ = "0.1.0"

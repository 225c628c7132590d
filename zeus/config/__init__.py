"""Configuration module for the zeus admin API."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]

"""
Configuration package for the application.
"""
from .settings import Settings, settings
from .game_config import GameConfig, game_config

# 導出全局設定實例
__all__ = ["Settings", "settings", "GameConfig", "game_config"]

"""유틸리티 모듈"""
from .config import ClientConfig, OverlayConfig, load_client_config, load_config
from .logging_config import setup_logging

__all__ = ["ClientConfig", "OverlayConfig", "load_client_config", "load_config", "setup_logging"]

"""
配置載入器

負責載入和管理系統配置，支援 config-example.yaml 預設值合併、型別安全和快取機制。
"""

import yaml
import logging
import os
from typing import Dict, Any, Optional
from pathlib import Path
from copy import deepcopy

from schemas.config_types import AppConfig, ConfigurationError


# 全域配置快取
_config_cache: Optional[AppConfig] = None
_legacy_config_cache: Optional[Dict[str, Any]] = None
_config_path_cache: Optional[str] = None


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """深度合併兩個字典，override 中的值會覆蓋 base 中的值。"""
    result = deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)
    return result


def load_config(filename: str = "config.yaml") -> Dict[str, Any]:
    """載入字典格式的配置

    先讀取同目錄下的 config-example.yaml 作為預設值，再以 filename 覆蓋。

    Args:
        filename: 配置檔案路徑

    Returns:
        Dict[str, Any]: 配置字典，兩個檔案都不存在時為空字典
    """
    global _legacy_config_cache, _config_path_cache

    if (_legacy_config_cache is not None and
            _config_path_cache == filename):
        return _legacy_config_cache

    config_dir = os.path.dirname(os.path.abspath(filename)) or "."
    example_path = os.path.join(config_dir, "config-example.yaml")

    default_cfg: Dict[str, Any] = {}
    if os.path.exists(example_path):
        try:
            with open(example_path, "r", encoding="utf-8") as f:
                default_cfg = yaml.safe_load(f) or {}
            logging.debug("Loaded default config from %s", example_path)
        except Exception as e:
            logging.warning("Failed to load default config: %s", e)

    override_cfg: Dict[str, Any] = {}
    if os.path.exists(filename):
        try:
            with open(filename, "r", encoding="utf-8") as f:
                override_cfg = yaml.safe_load(f) or {}
            logging.debug("Loaded override config from %s", filename)
        except Exception as e:
            logging.error("Failed to load override config: %s", e)
            if not default_cfg:
                raise ConfigurationError(f"無法載入配置 {filename}: {e}")
    else:
        logging.info("Override config not found, use default only if present")

    config = _deep_merge(default_cfg, override_cfg)

    _legacy_config_cache = config
    _config_path_cache = filename
    return config


def load_typed_config(config_path: str = "config.yaml", force_reload: bool = False) -> AppConfig:
    """載入型別安全的配置

    Args:
        config_path: 配置檔案路徑
        force_reload: 是否強制重新載入

    Returns:
        AppConfig: 型別安全的配置實例，無法載入時回傳預設配置
    """
    global _config_cache, _config_path_cache

    if (not force_reload and
            _config_cache is not None and
            _config_path_cache == config_path):
        return _config_cache

    try:
        if not Path(config_path).exists():
            logging.warning(f"配置檔案不存在: {config_path}，使用預設配置")
            config = AppConfig()
        else:
            config = AppConfig.from_yaml(config_path)
            logging.info(f"型別安全配置載入成功: {config_path}")
    except ConfigurationError as e:
        logging.error(f"載入型別安全配置失敗: {e}，使用預設配置")
        config = AppConfig()

    _config_cache = config
    _config_path_cache = config_path
    return config


def clear_config_cache():
    """清除配置快取"""
    global _config_cache, _legacy_config_cache, _config_path_cache
    _config_cache = None
    _legacy_config_cache = None
    _config_path_cache = None


def get_config_value(key_path: str, default: Any = None, config_path: str = "config.yaml") -> Any:
    """獲取配置值，支援點記法路徑

    Args:
        key_path: 配置鍵路徑，如 "watcher.poll_interval"
        default: 預設值
        config_path: 配置檔案路徑

    Returns:
        Any: 配置值
    """
    config = load_config(config_path)

    value = config
    for key in key_path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value

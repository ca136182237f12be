"""
型別安全的配置結構定義

使用 dataclass 定義各種配置類型，提供型別安全的配置載入和存取功能。
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from pathlib import Path
import yaml
import logging
import os
from dotenv import load_dotenv


@dataclass
class SystemConfig:
    """系統配置"""
    timezone: str = "UTC"
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class ReminderConfig:
    """提醒配置"""
    events_directory: str = "Events"
    rearm_on_change: bool = True


@dataclass
class WatcherConfig:
    """目錄監看配置"""
    poll_interval: float = 1.0
    include_hidden: bool = False


@dataclass
class NotificationConfig:
    """通知配置"""
    sink: str = "console"  # console | log
    default_decision: str = "keep"  # log sink 的回覆


class ConfigurationError(Exception):
    """配置錯誤異常"""
    pass


SUPPORTED_SINKS = ("console", "log")
SUPPORTED_DECISIONS = ("delete", "keep")


@dataclass
class AppConfig:
    """應用程式總配置"""
    system: SystemConfig = field(default_factory=SystemConfig)
    reminder: ReminderConfig = field(default_factory=ReminderConfig)
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)

    def __post_init__(self):
        """初始化後處理，載入環境變數"""
        load_dotenv()

        events_dir = os.getenv('REMEMBER_EVENTS_DIR')
        if events_dir:
            self.reminder.events_directory = events_dir

        log_level = os.getenv('REMEMBER_LOG_LEVEL')
        if log_level:
            self.system.log_level = log_level.upper()

    @classmethod
    def from_yaml(cls, config_path: str) -> 'AppConfig':
        """從 YAML 文件載入配置

        Args:
            config_path: 配置文件路徑

        Returns:
            AppConfig: 配置實例

        Raises:
            ConfigurationError: 配置載入失敗時拋出
        """
        try:
            config_file = Path(config_path)

            if not config_file.exists():
                logging.warning(f"配置檔案不存在: {config_path}，使用預設配置")
                return cls()

            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}

            # 載入預設配置（如果存在）
            example_path = config_file.parent / "config-example.yaml"

            default_data = {}
            if example_path.exists() and example_path.resolve() != config_file.resolve():
                try:
                    with open(example_path, 'r', encoding='utf-8') as f:
                        default_data = yaml.safe_load(f) or {}
                    logging.debug(f"載入預設配置: {example_path}")
                except Exception as e:
                    logging.warning(f"載入預設配置失敗: {e}")

            if default_data:
                merged_data = cls._deep_merge(default_data, data)
            else:
                merged_data = data

            cls._validate_config(merged_data)

            return cls._dict_to_dataclass(merged_data, cls)

        except ConfigurationError:
            raise
        except Exception as e:
            logging.error(f"配置載入失敗: {e}")
            raise ConfigurationError(f"無法載入配置 {config_path}: {e}")

    @staticmethod
    def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """深度合併兩個字典"""
        from copy import deepcopy

        result = deepcopy(base)
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = AppConfig._deep_merge(result[key], value)
            else:
                result[key] = deepcopy(value)
        return result

    @staticmethod
    def _validate_config(data: Dict[str, Any]) -> None:
        """驗證配置數據"""
        if not isinstance(data, dict):
            raise ConfigurationError("配置必須是字典格式")

        watcher_config = data.get("watcher", {})
        if isinstance(watcher_config, dict) and "poll_interval" in watcher_config:
            try:
                interval = float(watcher_config["poll_interval"])
            except (TypeError, ValueError):
                raise ConfigurationError(f"watcher.poll_interval 必須是數字: {watcher_config['poll_interval']!r}")
            if interval <= 0:
                raise ConfigurationError("watcher.poll_interval 必須大於 0")

        notification_config = data.get("notification", {})
        if isinstance(notification_config, dict):
            sink = notification_config.get("sink", "console")
            if sink not in SUPPORTED_SINKS:
                raise ConfigurationError(f"不支援的通知方式: {sink}")
            decision = notification_config.get("default_decision", "keep")
            if decision not in SUPPORTED_DECISIONS:
                raise ConfigurationError(f"不支援的預設處置: {decision}")

    @classmethod
    def _dict_to_dataclass(cls, data: Dict[str, Any], dataclass_type):
        """將字典轉換為 dataclass

        Args:
            data: 配置字典
            dataclass_type: 目標 dataclass 類型

        Returns:
            dataclass 實例
        """
        if not isinstance(data, dict):
            return data

        field_types = {}
        if hasattr(dataclass_type, '__dataclass_fields__'):
            field_types = {f.name: f.type for f in dataclass_type.__dataclass_fields__.values()}

        converted_data = {}
        for key, value in data.items():
            if key not in field_types:
                # 未知字段直接忽略
                logging.debug(f"忽略未知配置字段: {key}")
                continue

            field_type = field_types[key]
            if hasattr(field_type, '__dataclass_fields__'):
                converted_data[key] = cls._dict_to_dataclass(value, field_type)
            else:
                converted_data[key] = value

        return dataclass_type(**converted_data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppConfig':
        """從字典載入配置

        Args:
            data: 配置字典

        Returns:
            AppConfig: 配置實例
        """
        return cls._dict_to_dataclass(data, cls)

    def to_dict(self) -> Dict[str, Any]:
        """轉換為字典格式"""
        return self._dataclass_to_dict(self)

    @staticmethod
    def _dataclass_to_dict(obj) -> Any:
        """將 dataclass 轉換為字典"""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                result[field_name] = AppConfig._dataclass_to_dict(value)
            return result
        elif isinstance(obj, dict):
            return {k: AppConfig._dataclass_to_dict(v) for k, v in obj.items()}
        elif isinstance(obj, (list, tuple)):
            return [AppConfig._dataclass_to_dict(item) for item in obj]
        else:
            return obj

    def resolve_events_directory(self, base_dir: Optional[str] = None) -> Path:
        """取得事件目錄的絕對路徑

        Args:
            base_dir: 相對路徑的基準目錄，預設為目前工作目錄

        Returns:
            Path: 事件目錄
        """
        events_dir = Path(self.reminder.events_directory).expanduser()
        if not events_dir.is_absolute():
            events_dir = Path(base_dir or os.getcwd()) / events_dir
        return events_dir

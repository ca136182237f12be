import logging
from typing import Dict, Any


def setup_logger(cfg: Dict[str, Any]) -> None:
    """根據給定設定初始化 logging 系統。"""
    log_level = getattr(logging, str(cfg.get("log_level", "INFO")).upper(), logging.INFO)
    log_format = cfg.get("log_format", "%(asctime)s %(levelname)s: %(message)s")

    # 移除既有 handler，避免重複輸出
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    logging.basicConfig(level=log_level, format=log_format, force=True)

    # 調整 apscheduler logger 水位，每次輪詢都會輸出 INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    logging.info("Logger initialized → level: %s", logging.getLevelName(log_level))

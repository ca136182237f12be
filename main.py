"""
Remember 主要入口點

以背景服務方式執行：監看事件目錄，在提醒時間到達時跳出通知。
"""

import asyncio
import logging
import signal
from typing import Optional

from core.service import RememberService
from utils.config_loader import load_typed_config
from utils.logger import setup_logger


async def main(config_path: Optional[str] = None):
    """
    Remember 應用程式主要入口點

    Args:
        config_path: 配置文件路徑，如果為 None 則使用預設配置
    """
    config = load_typed_config(config_path) if config_path else load_typed_config()

    setup_logger(config.to_dict()["system"])
    logging.info("🚀 Remember 服務啟動中...")

    service = RememberService(config)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows 不支援，改由 KeyboardInterrupt 結束
            break

    await service.start()
    try:
        await stop_event.wait()
    finally:
        logging.info("🧹 正在關閉...")
        await service.stop()
        logging.info(f"✅ 應用程式已安全關閉，共觸發 {service.scheduler.delivered_count} 個提醒")


def run_remember(config_path: Optional[str] = None):
    """
    運行 Remember 的便利函數

    Args:
        config_path: 配置文件路徑，如果為 None 則使用預設配置
    """
    if config_path is None:
        import sys
        if len(sys.argv) > 1:
            config_path = sys.argv[1]

    try:
        asyncio.run(main(config_path))
    except KeyboardInterrupt:
        logging.info("👋 收到中斷信號，正在關閉...")


if __name__ == "__main__":
    run_remember()

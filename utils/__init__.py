"""
Utils 模組

配置載入與日誌設定。
"""
